"""
Dataset loader (CSV -> StormRecord list, lookup table -> CategoryMap)
====================================================================

This module reads the storm-events export and the category lookup table.

Key ideas:
- We try multiple possible column names because exports vary
  (`EVTYPE` in the legacy bulk file, `EVENT_TYPE` in the yearly files).
- Compression (.bz2, .gz, .zip) is inferred by pandas from the file name.
- The loader returns immutable records; nothing downstream edits the file.
"""

from __future__ import annotations
from typing import List
import logging
import os
import re

import pandas as pd

from .categories import CategoryMap
from .errors import LoadError
from .models import Dataset, StormRecord

logger = logging.getLogger(__name__)

def _to_int(x, column: str, row: int) -> int:
    """Convert a cell to int; blanks count as zero."""
    if pd.isna(x) or str(x).strip() == "": return 0
    try: return int(float(x))
    except (TypeError, ValueError):
        raise LoadError(f"Row {row}: {column}={x!r} is not a number") from None

def _to_float(x, column: str, row: int) -> float:
    """Convert a cell to float; blanks count as zero."""
    if pd.isna(x) or str(x).strip() == "": return 0.0
    try: return float(x)
    except (TypeError, ValueError):
        raise LoadError(f"Row {row}: {column}={x!r} is not a number") from None

def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise LoadError(f"Missing required column. Tried={names}. Available={cols}")

def _read_table(path: str, **kwargs) -> pd.DataFrame:
    if not os.path.exists(path):
        raise LoadError(f"Input file not found: {path}")
    try:
        if path.lower().endswith((".xlsx", ".xlsm")):
            df = pd.read_excel(path, engine="openpyxl", dtype=str, keep_default_na=False)
        else:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, **kwargs)
    except (OSError, EOFError, ValueError, pd.errors.ParserError) as e:
        raise LoadError(f"Could not parse {path}: {e}") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df

def load_storm_data(path: str, sep: str = ",") -> Dataset:
    """Load the storm-events table.

    Only the seven impact columns are kept on the records; the raw table's
    full shape is kept on the Dataset for the report's dimension figures.
    Exponent codes are kept verbatim (no case folding, no trimming).
    """
    df = _read_table(path, sep=sep)

    type_col = _col(df, "EVTYPE", "EVENT_TYPE", "Event Type")
    fatal_col = _col(df, "FATALITIES", "DEATHS_DIRECT", "Deaths")
    inj_col = _col(df, "INJURIES", "INJURIES_DIRECT")
    prop_col = _col(df, "PROPDMG", "PROP_DMG")
    prop_exp_col = _col(df, "PROPDMGEXP", "PROP_DMG_EXP")
    crop_col = _col(df, "CROPDMG", "CROP_DMG")
    crop_exp_col = _col(df, "CROPDMGEXP", "CROP_DMG_EXP")

    records: List[StormRecord] = []
    rows = zip(df[type_col], df[fatal_col], df[inj_col],
               df[prop_col], df[prop_exp_col], df[crop_col], df[crop_exp_col])
    for i, (etype, fatal, inj, prop, prop_exp, crop, crop_exp) in enumerate(rows):
        records.append(StormRecord(
            record_id=i,
            event_type=_to_str(etype),
            fatalities=_to_int(fatal, fatal_col, i),
            injuries=_to_int(inj, inj_col, i),
            prop_dmg=_to_float(prop, prop_col, i),
            prop_dmg_exp="" if pd.isna(prop_exp) else str(prop_exp),
            crop_dmg=_to_float(crop, crop_col, i),
            crop_dmg_exp="" if pd.isna(crop_exp) else str(crop_exp),
        ))

    n_rows, n_cols = df.shape
    logger.info("Loaded %d rows x %d columns from %s", n_rows, n_cols, path)
    return Dataset(records=records, n_rows=n_rows, n_cols=n_cols, path=path)

def load_category_map(path: str) -> CategoryMap:
    """Load the two-column lookup table (original label -> canonical label).

    Row order is preserved; it is what the strict alignment check compares
    against. Blank rows are skipped.
    """
    df = _read_table(path)
    orig_col = _col(df, "original", "raw", "EVTYPE", "event_type")
    canon_col = _col(df, "canonical", "mapped", "new", "category")

    pairs = []
    for orig, canon in zip(df[orig_col], df[canon_col]):
        o, c = _to_str(orig), _to_str(canon)
        if not o and not c:
            continue
        pairs.append((o, c))
    logger.info("Loaded %d category mappings from %s", len(pairs), path)
    return CategoryMap.from_pairs(pairs)
