# =========================================
# 📄 File: src/etl/sql_generator.py
# Purpose: Map a WHO ICD-11 MMS detail record to an Oracle INSERT for HIS_TB_MMS_CATEGORIA
# - Escape and null-coalesce every text field
# - Encode flags as NUMBER(1) 1/0
# - Own the output .sql file (truncate on start, append per record)
# =========================================

import os
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy import MetaData, Table, Column, Integer, String, Text, insert, literal_column
from sqlalchemy.dialects import oracle

log = logging.getLogger(__name__)

TABLE_NAME = "HIS_TB_MMS_CATEGORIA"
CATEGORY_SEQUENCE = "HIS_SQ_MMS_CATEGORIA"
NULL = "NULL"

# Resolves a parent (chapter/block) URI to its id in HIS_TB_MMS_CAPITULO / HIS_TB_MMS_BLOQUE
ParentLookup = Callable[[str], Optional[int]]


def no_parent_lookup(uri: str) -> Optional[int]:
    """Chapter/block tables are not loaded yet, so nothing resolves."""
    return None


# -----------------------
# Target table (column order is the INSERT column order)
# -----------------------
metadata = MetaData()
categoria = Table(
    TABLE_NAME,
    metadata,
    Column("ID_CATEGORIA", Integer, nullable=False, quote=False),
    Column("ID_BLOQUE", Integer, quote=False),
    Column("ID_CAPITULO", Integer, quote=False),
    Column("ID_VERSION", Integer, nullable=False, quote=False),
    Column("URI_OMS", String(500), nullable=False, quote=False),
    Column("CODIGO", String(20), nullable=False, quote=False),
    Column("URI_FUENTE_FOUNDATION", String(500), quote=False),
    Column("TITULO", String(1000), nullable=False, quote=False),
    Column("DEFINICION", Text, quote=False),
    Column("NOMBRE_COMPLETO", String(1000), quote=False),
    Column("CRITERIOS_DIAGNOSTICOS", Text, quote=False),
    Column("NOTA_CODIFICACION", Text, quote=False),
    Column("URL_NAVEGADOR", String(500), quote=False),
    Column("ES_RESIDUAL_OTRO", Integer, quote=False),
    Column("ES_RESIDUAL_NO_ESPECIFICADO", Integer, quote=False),
    Column("ES_HOJA", Integer, quote=False),
    Column("TIENE_ENLACE_MATERNAL", Integer, quote=False),
    Column("TIENE_ENLACE_PERINATAL", Integer, quote=False),
    quote=False,
    implicit_returning=False,  # plain INSERT text, no RETURNING ... INTO
)

COLUMNS = [c.name for c in categoria.columns]


# -----------------------
# Value helpers
# -----------------------
def sanitize_and_escape(value: Any) -> str:
    """None -> NULL (unquoted); otherwise trimmed, quotes doubled, single-quoted."""
    if value is None:
        return NULL
    cleaned = str(value).strip().replace("'", "''")
    return f"'{cleaned}'"


def to_oracle_boolean(value: Any) -> str:
    """Oracle has no BOOLEAN column type here: NUMBER(1) 1/0."""
    return "1" if value else "0"


def optional_text(detail: Dict[str, Any], field: str) -> Optional[str]:
    value = detail.get(field)
    if value is None:
        return None
    return str(value)


def localized_value(detail: Dict[str, Any], field: str) -> Optional[str]:
    """
    Read the '@value' of a language-tagged wrapper such as
    {"@language": "es", "@value": "Bronquitis"}.

    Returns None when the wrapper or its '@value' is missing; an empty
    '@value' comes back as "" so callers can tell the two apart.
    """
    wrapper = detail.get(field)
    if not isinstance(wrapper, dict):
        return None
    value = wrapper.get("@value")
    if value is None:
        return None
    return str(value)


def has_items(detail: Dict[str, Any], field: str) -> bool:
    """True when the field is present, is a list, and is not empty."""
    value = detail.get(field)
    return isinstance(value, list) and len(value) > 0


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def _sql_int(value: Optional[int]) -> str:
    return NULL if value is None else str(int(value))


class SQLGenerator:
    """Builds INSERT statements for HIS_TB_MMS_CATEGORIA and appends them to a file."""

    def __init__(self, output_file_path: str, parent_lookup: ParentLookup = no_parent_lookup):
        self.output_file_path = os.path.abspath(output_file_path)
        self.parent_lookup = parent_lookup
        self.clear_output_file()  # every run starts from an empty file

    # -----------------------
    # Output file
    # -----------------------
    def clear_output_file(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.output_file_path), exist_ok=True)
            with open(self.output_file_path, "w", encoding="utf-8"):
                pass
            log.info(f"Output SQL file '{self.output_file_path}' cleared.")
        except OSError as e:
            log.error(f"Failed to clear the output SQL file: {e}")

    def write_statement(self, statement: str) -> None:
        try:
            with open(self.output_file_path, "a", encoding="utf-8") as f:
                f.write(statement + "\n")
        except OSError as e:
            log.error(f"Failed to write the SQL statement to the file: {e}")

    # -----------------------
    # Chapter / block
    # -----------------------
    def resolve_parents(self, detail: Dict[str, Any]):
        """
        Classify each parent URI as chapter ('/chapter/' in it) or block and
        ask the lookup for its id. Returns (id_capitulo, id_bloque).
        """
        id_capitulo = None
        id_bloque = None
        parents = detail.get("parent")
        if not isinstance(parents, list):
            return id_capitulo, id_bloque

        for parent_uri in parents:
            if not isinstance(parent_uri, str):
                continue
            if "/chapter/" in parent_uri:
                if id_capitulo is None:
                    id_capitulo = self.parent_lookup(parent_uri)
            elif id_bloque is None:
                id_bloque = self.parent_lookup(parent_uri)
        return id_capitulo, id_bloque

    # -----------------------
    # INSERT generation
    # -----------------------
    def build_row(self, detail: Dict[str, Any], id_version: int) -> Dict[str, str]:
        """Column -> rendered SQL literal, in table column order."""
        uri_oms = _blank_to_none(optional_text(detail, "@id"))
        id_capitulo, id_bloque = self.resolve_parents(detail)

        return {
            "ID_CATEGORIA": f"{CATEGORY_SEQUENCE}.NEXTVAL",
            "ID_BLOQUE": _sql_int(id_bloque),
            "ID_CAPITULO": _sql_int(id_capitulo),
            "ID_VERSION": _sql_int(id_version),
            "URI_OMS": sanitize_and_escape(uri_oms),
            "CODIGO": sanitize_and_escape(_blank_to_none(optional_text(detail, "code"))),
            "URI_FUENTE_FOUNDATION": sanitize_and_escape(_blank_to_none(optional_text(detail, "source"))),
            "TITULO": sanitize_and_escape(_blank_to_none(localized_value(detail, "title"))),
            "DEFINICION": sanitize_and_escape(_blank_to_none(localized_value(detail, "definition"))),
            "NOMBRE_COMPLETO": sanitize_and_escape(_blank_to_none(localized_value(detail, "fullySpecifiedName"))),
            # Not part of the MMS entity response; kept for later enrichment
            "CRITERIOS_DIAGNOSTICOS": NULL,
            "NOTA_CODIFICACION": NULL,
            "URL_NAVEGADOR": sanitize_and_escape(_blank_to_none(optional_text(detail, "browserUrl"))),
            "ES_RESIDUAL_OTRO": to_oracle_boolean(uri_oms is not None and uri_oms.endswith("/other")),
            "ES_RESIDUAL_NO_ESPECIFICADO": to_oracle_boolean(uri_oms is not None and uri_oms.endswith("/unspecified")),
            "ES_HOJA": to_oracle_boolean(not has_items(detail, "child")),
            "TIENE_ENLACE_MATERNAL": to_oracle_boolean(has_items(detail, "relatedEntitiesInMaternalChapter")),
            "TIENE_ENLACE_PERINATAL": to_oracle_boolean(has_items(detail, "relatedEntitiesInPerinatalChapter")),
        }

    def generate_insert_statement(self, detail: Dict[str, Any], id_version: Any) -> Optional[str]:
        """
        Render one INSERT for the detail record, or None when URI, code,
        title or version id is missing (the caller skips the code).

        Long DEFINICION values are written inline; CLOB chunking is not handled.
        """
        if not isinstance(detail, dict):
            log.error("Cannot generate INSERT: detail record is not an object.")
            return None
        code = detail.get("code")
        if id_version is None or isinstance(id_version, bool) or not isinstance(id_version, int):
            log.error(f"Incomplete data to generate INSERT for code {code}: invalid version id {id_version!r}.")
            return None

        row = self.build_row(detail, id_version)

        missing = [col for col in ("URI_OMS", "CODIGO", "TITULO") if row[col] == NULL]
        if missing:
            log.error(
                f"Incomplete data to generate INSERT for code {code}. Missing: {', '.join(missing)}."
            )
            return None

        stmt = insert(categoria).values({col: literal_column(row[col]) for col in COLUMNS})
        return f"{stmt.compile(dialect=oracle.dialect())};"
