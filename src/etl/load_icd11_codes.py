#!/usr/bin/env python3
"""
CIE-11 Master Data Loader
-------------------------
 - Reads CIE-11 codes from a JSON array file
 - Resolves each code to its stemId and fetches the MMS entity from the WHO ICD-11 API
 - Writes one INSERT INTO HIS_TB_MMS_CATEGORIA per code into an .sql file

Codes are processed one at a time. A code that fails at any stage is logged
and skipped; only a failed access token request stops the run.

Run:
    ENV=dev python -m src.etl.load_icd11_codes
"""

import os
import sys
import logging
import argparse
from typing import Any, Dict, Optional

from config.config_loader import get_config
from src.api.who_icd11_client import WHOICD11Client, TokenAcquisitionError
from src.etl.sql_generator import SQLGenerator
from src.extract.json_code_reader import read_codes

log = logging.getLogger(__name__)


# -----------------------
# Pipeline
# -----------------------
def process_code(code: str, api_client: WHOICD11Client, sql_generator: SQLGenerator,
                 id_version: int) -> bool:
    """Resolve -> fetch -> generate -> write for one code. True when a statement was written."""
    code_info = api_client.get_stem_id_by_code(code)
    stem_id = code_info.get("stemId") if isinstance(code_info, dict) else None
    if not stem_id:
        log.error(f"Could not obtain the 'stemId' for code '{code}'.")
        return False

    # Full stemId URI goes through; the client extracts the path after /mms/
    details = api_client.get_diagnosis_details_by_id(stem_id)
    if not details:
        log.error(f"Could not fetch the full details for code '{code}'.")
        return False

    statement = sql_generator.generate_insert_statement(details, id_version)
    if not statement:
        log.error(f"Could not generate the INSERT for code '{code}'.")
        return False

    sql_generator.write_statement(statement)
    log.info(f"INSERT generated and written for code '{code}'.")
    return True


def run(cfg: Dict[str, Any], api_client: Optional[WHOICD11Client] = None,
        sql_generator: Optional[SQLGenerator] = None) -> Dict[str, Any]:
    """
    Main loader workflow:
      1) Clear the output file
      2) Read codes (empty list -> stop with a warning)
      3) For each code: stemId -> details -> INSERT -> append

    TokenAcquisitionError is logged and re-raised; everything else is per-code.
    """
    api_client = api_client or WHOICD11Client(cfg["who_icd11"])
    sql_generator = sql_generator or SQLGenerator(cfg["files"]["output_sql"])
    id_version = cfg["mms_version_id"]
    summary = {"total": 0, "written": 0, "skipped": 0, "output_file": sql_generator.output_file_path}

    try:
        log.info("--- Starting CIE-11 master data load ---")
        log.info(f"Using MMS version id: {id_version}")

        sql_generator.clear_output_file()
        codes = read_codes(cfg["files"]["input_codes"])
        summary["total"] = len(codes)

        if not codes:
            log.warning("No CIE-11 codes found to process in the JSON file.")
            return summary

        for code in codes:
            log.info(f"--- Processing code: '{code}' ---")
            if process_code(code, api_client, sql_generator, id_version):
                summary["written"] += 1
            else:
                summary["skipped"] += 1

        return summary
    except TokenAcquisitionError as e:
        log.critical(f"Critical error, aborting the load: {e}")
        raise
    finally:
        log.info(
            f"--- CIE-11 master data load finished "
            f"({summary['written']} written, {summary['skipped']} skipped of {summary['total']}). "
            f"Check '{summary['output_file']}' ---"
        )


# -----------------------
# CLI interface
# -----------------------
def parse_args(argv=None):
    """
    Command-line overrides for the YAML config:
    --env         : config environment (dev/prod), defaults to $ENV or dev
    --input       : JSON file with the codes
    --output      : .sql file to write
    --version-id  : HIS_TB_MMS_VERSION id for ID_VERSION
    """
    p = argparse.ArgumentParser(description="Generate HIS_TB_MMS_CATEGORIA INSERTs from the WHO ICD-11 API")
    p.add_argument("--env", type=str, default=None, help="Config environment (dev/prod)")
    p.add_argument("--input", type=str, default=None, help="Path to the JSON array of codes")
    p.add_argument("--output", type=str, default=None, help="Path to the output .sql file")
    p.add_argument("--version-id", type=int, default=None, help="MMS version id for the rows")
    return p.parse_args(argv)


def apply_overrides(cfg: Dict[str, Any], args) -> Dict[str, Any]:
    if args.input:
        cfg["files"]["input_codes"] = args.input
    if args.output:
        cfg["files"]["output_sql"] = args.output
    if args.version_id is not None:
        cfg["mms_version_id"] = args.version_id
    return cfg


def main(argv=None) -> int:
    args = parse_args(argv)
    cfg = apply_overrides(get_config(args.env), args)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", cfg["log_level"]),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        run(cfg)
        return 0
    except TokenAcquisitionError as e:
        log.exception(f"❌ CIE-11 load failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
