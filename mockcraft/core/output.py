"""Writers for CSV, JSON and SQL script output."""

import csv
import json
import logging
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from .models import Table

logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ["csv", "json", "sql"]

SQL_TYPES = {
    "uuid": "CHAR(36)",
    "string": "VARCHAR(255)",
    "varchar": "VARCHAR(255)",
    "text": "TEXT",
    "integer": "INT",
    "int": "INT",
    "bigint": "BIGINT",
    "smallint": "SMALLINT",
    "decimal": "DECIMAL(10,2)",
    "numeric": "DECIMAL(10,2)",
    "float": "FLOAT",
    "boolean": "BOOLEAN",
    "bool": "BOOLEAN",
    "date": "DATE",
    "datetime": "TIMESTAMP",
    "timestamp": "TIMESTAMP",
}


def json_default(value: Any) -> Any:
    """Fallback encoder for values the json module does not know."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def format_value(value: Any) -> str:
    """Render a value for a CSV cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=json_default)
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


def format_sql_value(value: Any) -> str:
    """Render a value as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        value = json.dumps(value, default=json_default)
    elif not isinstance(value, str):
        value = format_value(value)
    return "'" + value.replace("'", "''") + "'"


def _columns(rows: Sequence[Dict[str, Any]]) -> List[str]:
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def write_csv(directory: Union[str, Path], table_name: str, rows: Sequence[Dict[str, Any]]) -> Path:
    """Write ``rows`` to ``<directory>/<table_name>.csv`` and return the path."""
    path = Path(directory) / f"{table_name}.csv"
    columns = _columns(rows)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if columns:
            writer.writerow(columns)
            for row in rows:
                writer.writerow([format_value(row.get(c)) for c in columns])
    logger.info(f"Wrote {len(rows)} rows to {path}")
    return path


def write_json(directory: Union[str, Path], table_name: str, rows: Sequence[Dict[str, Any]]) -> Path:
    """Write ``rows`` to ``<directory>/<table_name>.json`` and return the path."""
    path = Path(directory) / f"{table_name}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(list(rows), f, indent=2, default=json_default)
    logger.info(f"Wrote {len(rows)} rows to {path}")
    return path


def create_table_statement(table: Table) -> str:
    lines = []
    for column in table.columns:
        line = f"  {column.name} {SQL_TYPES.get(column.type.lower(), 'TEXT')}"
        if column.is_primary:
            line += " PRIMARY KEY"
        if not column.is_nullable and not column.is_primary:
            line += " NOT NULL"
        if column.is_unique and not column.is_primary:
            line += " UNIQUE"
        if column.default is not None:
            line += f" DEFAULT {format_sql_value(column.default)}"
        lines.append(line)
    return f"CREATE TABLE IF NOT EXISTS {table.name} (\n" + ",\n".join(lines) + "\n);\n"


def write_sql(path: Union[str, Path], tables: Sequence[Tuple[Table, Sequence[Dict[str, Any]]]]) -> Path:
    """Write one script creating and filling ``tables`` in the given order."""
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        for table, rows in tables:
            f.write(create_table_statement(table))
            f.write("\n")
            columns = _columns(rows)
            for row in rows:
                values = ", ".join(format_sql_value(row.get(c)) for c in columns)
                f.write(f"INSERT INTO {table.name} ({', '.join(columns)}) VALUES ({values});\n")
            f.write("\n")
    logger.info(f"Wrote SQL script for {len(tables)} tables to {path}")
    return path
