# farmly/database.py
"""
File-backed table store using CSV (preferred) or Excel (xlsx) files.
Provides the CRUD primitives the catalog, orders and cart slots are built on.
Writes go through a file lock so concurrent writers cannot corrupt a table.

Usage:
    from farmly.database import db
    db.list_records("products")
    db.get_record("farms", "id", 3)
    db.create_record("reviews", {"product_id": 3, "rating": 5})
    db.upsert_record("cart_slots", "key", "session-1", {"value": "{...}"})

Every value comes back as a string (or None); callers convert types.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd
from filelock import FileLock
from farmly.config import settings

DATA_DIR = Path(settings.DATA_DIR)
if not DATA_DIR.exists():
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def _clean_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (None if pd.isna(v) else v) for k, v in row.items()}


class FileBackedDB:
    """
    Manages CSV / Excel tables inside data_dir.
    A table name maps to a file name through settings, or falls back to <table>.csv.
    """

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)

    def _file_path(self, table: str) -> Path:
        # explicit filenames are taken relative to data_dir
        if table.endswith(".csv") or table.endswith(".xlsx"):
            return Path(self.data_dir) / Path(table)

        mapping = {
            "products": settings.PRODUCTS_FILE,
            "farms": settings.FARMS_FILE,
            "events": settings.EVENTS_FILE,
            "event_products": settings.EVENT_PRODUCTS_FILE,
            "reviews": settings.REVIEWS_FILE,
            "orders": settings.ORDERS_FILE,
        }
        filename = mapping.get(table, f"{table}.csv")
        return Path(self.data_dir) / Path(filename)

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock")

    def _read_df(self, table: str) -> pd.DataFrame:
        path = self._file_path(table)
        if not path.exists():
            return pd.DataFrame()
        if path.suffix.lower() in (".xls", ".xlsx"):
            return pd.read_excel(path, dtype=str).fillna("")
        return pd.read_csv(path, dtype=str, keep_default_na=False).fillna("")

    def _write_df_nolock(self, table: str, df: pd.DataFrame) -> None:
        """
        Write DataFrame for `table` WITHOUT acquiring the file lock.
        Only call this while already holding the lock.
        """
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() in (".xls", ".xlsx"):
            df.to_excel(path, index=False)
        else:
            df.to_csv(path, index=False)

    def _next_id(self, df: pd.DataFrame, id_field: str) -> int:
        if df.empty or id_field not in df.columns:
            return 1
        ids = [int(v) for v in df[id_field].astype(str) if v.strip().isdigit()]
        return (max(ids) + 1) if ids else 1

    # --- high-level CRUD primitives ---

    def list_records(self, table: str) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty:
            return []
        return [_clean_row(r) for r in df.to_dict(orient="records")]

    def get_record(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty or key not in df.columns:
            return None
        # compare as strings; the CSV store has no types
        mask = df[key].astype(str) == str(value)
        if not mask.any():
            return None
        return _clean_row(df[mask].iloc[0].to_dict())

    def filter_records(self, table: str, key: str, value: Any) -> List[Dict[str, Any]]:
        df = self._read_df(table)
        if df.empty or key not in df.columns:
            return []
        rows = df[df[key].astype(str) == str(value)]
        return [_clean_row(r) for r in rows.to_dict(orient="records")]

    def create_record(self, table: str, data: Dict[str, Any], id_field: str = "id") -> Dict[str, Any]:
        """
        Create a new record. If id_field is missing from `data` the next integer id is assigned.
        Returns the saved record (with id).
        """
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock_for(path):
            df = self._read_df(table)
            if id_field not in data or data.get(id_field) in (None, ""):
                data[id_field] = self._next_id(df, id_field)
            new_row = {k: ("" if v is None else v) for k, v in data.items()}
            if df.empty:
                df = pd.DataFrame([new_row])
            else:
                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True, sort=False)
            self._write_df_nolock(table, df.fillna(""))
        return data

    def update_record(self, table: str, key: str, value: Any, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Update rows where df[key] == value. Returns the first updated row or None.
        """
        path = self._file_path(table)
        with self._lock_for(path):
            df = self._read_df(table)
            if df.empty or key not in df.columns:
                return None
            mask = df[key].astype(str) == str(value)
            if not mask.any():
                return None
            for k, v in updates.items():
                if k not in df.columns:
                    df[k] = ""
                df[k] = df[k].astype(object)
                df.loc[mask, k] = "" if v is None else v
            self._write_df_nolock(table, df)
            return _clean_row(df[mask].iloc[0].to_dict())

    def upsert_record(self, table: str, key: str, value: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update the row where df[key] == value, or append it when absent.
        The read-modify-write happens under one lock acquisition.
        """
        path = self._file_path(table)
        path.parent.mkdir(parents=True, exist_ok=True)
        row = {key: value, **fields}
        with self._lock_for(path):
            df = self._read_df(table)
            mask = df[key].astype(str) == str(value) if key in df.columns else None
            if mask is not None and mask.any():
                for k, v in fields.items():
                    if k not in df.columns:
                        df[k] = ""
                    df[k] = df[k].astype(object)
                    df.loc[mask, k] = "" if v is None else v
            else:
                new_row = {k: ("" if v is None else v) for k, v in row.items()}
                if df.empty:
                    df = pd.DataFrame([new_row])
                else:
                    df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True, sort=False)
            self._write_df_nolock(table, df.fillna(""))
        return row


# module-level singleton for convenience
db = FileBackedDB()
