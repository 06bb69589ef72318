# =========================================
# 📄 File: src/extract/json_code_reader.py
# Purpose: Read the list of CIE-11 codes to load from a JSON array file
# =========================================

import os
import json
import logging
from typing import List

log = logging.getLogger(__name__)


def read_codes(file_path: str) -> List[str]:
    """
    Read a JSON file that must contain an array of codes, e.g. ["CA40", "1A00"].

    Order is preserved. Any failure (missing file, bad JSON, not an array)
    is logged and an empty list is returned so the caller can stop gracefully.
    """
    absolute_path = os.path.abspath(file_path)
    log.info(f"Reading CIE-11 codes from: {absolute_path}")

    try:
        with open(absolute_path, "r", encoding="utf-8") as f:
            codes = json.load(f)
    except (OSError, ValueError) as e:  # JSONDecodeError and UnicodeDecodeError are ValueErrors
        log.error(f"Failed to read or parse JSON file '{file_path}': {e}")
        return []

    if not isinstance(codes, list):
        log.error(f"JSON file {file_path} does not contain an array of codes.")
        return []

    log.info(f"Read {len(codes)} codes from the JSON file.")
    return codes
