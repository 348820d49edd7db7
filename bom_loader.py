"""
bom_loader.py

Import BOM data into an engine.

Three inputs are understood:
- an indented BOM export (SAP CS12 style) with a 'Level' column, a
  'Component number' column and a quantity column like 'Comp. Qty (BUn)';
- a flat table with parent, child, quantity and optional cost columns;
- a JSON document {"components": [...], "bom_items": [...]}.

Cells are read as text so quantities reach the engine without passing
through binary floats.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, IO, List, Optional, Sequence, Union

import pandas as pd

from bom_errors import BomFormatError
from bom_engine import BomEngine


logger = logging.getLogger(__name__)

LEVEL_HEADERS = ["level", "lvl"]
COMPONENT_HEADERS = ["component number", "component", "material", "object"]
QUANTITY_HEADERS = ["comp. qty (bun)", "comp. qty", "quantity", "qty", "amount"]
UNIT_HEADERS = ["unit", "uom", "bun"]
DESCRIPTION_HEADERS = ["description", "desc", "text"]
COST_HEADERS = ["direct cost", "standard cost", "std. price", "cost", "price"]
PARENT_HEADERS = ["parent_id", "parent"]
CHILD_HEADERS = ["child_id", "child"]
SCRAP_HEADERS = ["scrap_factor", "scrap"]


# ---------- Data Models ----------

@dataclass
class BomData:
    """Records ready for ``BomEngine.load``."""
    components: List[Dict[str, Any]] = field(default_factory=list)
    items: List[Dict[str, Any]] = field(default_factory=list)
    root_id: Optional[str] = None

    def load_into(self, engine: BomEngine) -> BomEngine:
        engine.load(self.components, self.items)
        return engine


# ---------- Column Detection ----------

def find_column(df: pd.DataFrame, candidates: Sequence[str], exclude: Sequence[str] = ()) -> Optional[str]:
    """
    First column whose header matches a candidate exactly (case-insensitive),
    else the first one containing a candidate.
    """
    headers = {col: str(col).strip().lower() for col in df.columns}
    for cand in candidates:
        for col, header in headers.items():
            if header == cand:
                return col
    for cand in candidates:
        for col, header in headers.items():
            if cand in header and not any(x in header for x in exclude):
                return col
    return None


def find_material_type_column(df: pd.DataFrame) -> Optional[str]:
    target_headers = ["material type", "mat. type", "mat_type", "ptyp", "mtart", "component_type"]
    for col in df.columns:
        if any(t in str(col).lower() for t in target_headers):
            return col

    # Fallback: look for 'Type' but exclude non-relevant columns
    for col in df.columns:
        c_str = str(col).lower()
        if "type" in c_str and not any(x in c_str for x in ["mrp", "item", "doc", "class"]):
            return col
    return None


def cell_text(value: Any) -> str:
    """Cell as stripped text; '' for empty/NaN, integral floats without '.0'."""
    if value is None:
        return ""
    if isinstance(value, float):
        if pd.isna(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def decimal_text(value: Any) -> str:
    """
    Numeric cell as engine decimal text. A single comma becomes a decimal
    point ("0,5") unless exactly three digits follow it; "1,000" is left for
    the engine to reject.
    """
    text = cell_text(value)
    if text.count(",") == 1 and "." not in text:
        if len(text.partition(",")[2]) != 3:
            return text.replace(",", ".")
    return text


# ---------- Indented BOM ----------

def parse_indented_bom(df: pd.DataFrame, default_uom: str = "EA") -> BomData:
    """
    Parse an indented BOM where hierarchy is given by 'Level' and components
    by 'Component number'.

    Parent-finding rule:
    - For a row at level L (L > 1), its parent is the closest previous row
      with Level < L.
    - For Level 1:
        - The first Level 1 row is treated as the global root (no parent edge).
        - Additional Level 1 rows are children of that root.

    An assembly listed again under another parent usually repeats its own
    children; only the children under its first occurrence are kept, so the
    repetition is not counted twice.
    """
    col_level = find_column(df, LEVEL_HEADERS)
    col_comp = find_column(df, COMPONENT_HEADERS, exclude=["type", "qty", "quantity"])
    if col_level is None or col_comp is None:
        raise BomFormatError(
            f"Missing Level/Component columns. Found: {list(df.columns)}", "indented"
        )

    col_qty = find_column(df, QUANTITY_HEADERS)
    col_unit = find_column(df, UNIT_HEADERS, exclude=["qty", "quantity"])
    col_desc = find_column(df, DESCRIPTION_HEADERS)
    col_cost = find_column(df, COST_HEADERS, exclude=["type"])
    col_type = find_material_type_column(df)
    known = {col_level, col_comp, col_qty, col_unit, col_desc, col_cost, col_type}

    data = BomData()
    seen_components: Dict[str, Dict[str, Any]] = {}
    expanded_by: Dict[str, int] = {}
    root_position = 0

    # Stack of ancestors: list of (level, component, row position)
    stack: List[tuple] = []

    for position, (_, row) in enumerate(df.iterrows()):
        comp = cell_text(row[col_comp])
        level_text = cell_text(row[col_level])
        if not comp or not level_text:
            continue
        try:
            level = int(Decimal(level_text.lstrip(".")))
        except ArithmeticError:
            raise BomFormatError(f"Invalid level {level_text!r} for {comp}", "indented") from None

        if comp not in seen_components:
            record = {
                "id": comp,
                "name": cell_text(row[col_desc]) if col_desc is not None else "",
                "uom": (cell_text(row[col_unit]) if col_unit is not None else "") or default_uom,
                "component_type": cell_text(row[col_type]) if col_type is not None else "",
                "direct_cost": (decimal_text(row[col_cost]) if col_cost is not None else "") or "0",
                "metadata": {
                    str(col): cell_text(row[col]) for col in df.columns if col not in known
                },
            }
            seen_components[comp] = record
            data.components.append(record)

        if data.root_id is None:
            data.root_id = comp
            root_position = position
            stack = [(level, comp, position)]
            continue

        while stack and stack[-1][0] >= level:
            stack.pop()
        parent, parent_position = (stack[-1][1], stack[-1][2]) if stack else (data.root_id, root_position)
        stack.append((level, comp, position))

        if expanded_by.setdefault(parent, parent_position) != parent_position:
            continue

        quantity = (decimal_text(row[col_qty]) if col_qty is not None else "") or "1"
        data.items.append({"parent_id": parent, "child_id": comp, "quantity": quantity})

    if data.root_id is None:
        raise BomFormatError("BOM table has no component rows", "indented")
    logger.info("Parsed indented BOM for %s: %d rows", data.root_id, len(df))
    return data


# ---------- Flat BOM ----------

def parse_flat_bom(df: pd.DataFrame, default_uom: str = "EA") -> BomData:
    """
    Parse a flat table of parent, child, quantity[, cost[, scrap]] rows.

    Components are created for every ID seen. The optional cost column is the
    child's direct cost; parents get a cost only from a row naming them as child.
    """
    col_parent = find_column(df, PARENT_HEADERS)
    col_child = find_column(df, CHILD_HEADERS)
    if col_parent is None or col_child is None:
        raise BomFormatError(f"Missing parent/child columns. Found: {list(df.columns)}", "flat")
    col_qty = find_column(df, QUANTITY_HEADERS)
    col_cost = find_column(df, COST_HEADERS)
    col_scrap = find_column(df, SCRAP_HEADERS)

    data = BomData()
    records: Dict[str, Dict[str, Any]] = {}

    def record_for(cid: str) -> Dict[str, Any]:
        if cid not in records:
            records[cid] = {"id": cid, "name": cid, "uom": default_uom, "direct_cost": "0"}
            data.components.append(records[cid])
        return records[cid]

    for _, row in df.iterrows():
        parent = cell_text(row[col_parent])
        child = cell_text(row[col_child])
        if not parent or not child:
            continue
        record_for(parent)
        child_record = record_for(child)
        if col_cost is not None and cell_text(row[col_cost]):
            child_record["direct_cost"] = decimal_text(row[col_cost])
        data.items.append({
            "parent_id": parent,
            "child_id": child,
            "quantity": (decimal_text(row[col_qty]) if col_qty is not None else "") or "1",
            "scrap_factor": (decimal_text(row[col_scrap]) if col_scrap is not None else "") or "0",
        })

    logger.info("Parsed flat BOM: %d components, %d items", len(data.components), len(data.items))
    return data


# ---------- JSON ----------

def parse_json_bom(text: str) -> BomData:
    """Parse {"components": [...], "bom_items": [...]}; numbers stay exact."""
    try:
        document = json.loads(text, parse_float=Decimal, parse_int=Decimal)
    except ValueError as exc:
        raise BomFormatError(f"Invalid JSON: {exc}", "json") from exc
    if not isinstance(document, dict) or "components" not in document:
        raise BomFormatError("JSON BOM must be an object with a 'components' list", "json")

    items = document.get("bom_items", document.get("items", []))
    for item in items:
        missing = {"parent_id", "child_id", "quantity"} - set(item)
        if missing:
            raise BomFormatError(f"BOM item missing fields: {sorted(missing)}", "json")
    return BomData(components=list(document["components"]), items=list(items))


# ---------- Files ----------

def read_table(source: Union[str, IO], name: Optional[str] = None) -> pd.DataFrame:
    """Read a CSV or Excel sheet with every cell as text."""
    name = (name or getattr(source, "name", None) or str(source)).lower()
    if hasattr(source, "seek"):
        source.seek(0)

    try:
        if name.endswith((".xlsx", ".xls")):
            return pd.read_excel(source, dtype=str)
        try:
            return pd.read_csv(source, dtype=str, keep_default_na=False)
        except UnicodeDecodeError:
            if hasattr(source, "seek"):
                source.seek(0)
            return pd.read_csv(source, dtype=str, keep_default_na=False, encoding="latin1")
    except OSError as exc:
        raise BomFormatError(f"Cannot read {name}: {exc}", name) from exc
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise BomFormatError(f"Unreadable table {name}: {exc}", name) from exc


def read_bom_file(source: Union[str, IO], name: Optional[str] = None, default_uom: str = "EA") -> BomData:
    """
    Read a BOM from a path or an uploaded file object.

    JSON is chosen by extension; tables with a Level column are parsed as
    indented BOMs, anything else as flat parent/child tables.
    """
    name = name or getattr(source, "name", None) or str(source)
    if name.lower().endswith(".json"):
        if hasattr(source, "read"):
            if hasattr(source, "seek"):
                source.seek(0)
            raw = source.read()
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        else:
            if not os.path.exists(source):
                raise BomFormatError(f"File not found: {source}", name)
            with open(source, "r", encoding="utf-8") as f:
                text = f.read()
        return parse_json_bom(text)

    df = read_table(source, name)
    if df.empty:
        raise BomFormatError(f"No rows in {name}", name)
    if find_column(df, LEVEL_HEADERS) is not None:
        return parse_indented_bom(df, default_uom)
    return parse_flat_bom(df, default_uom)
