# ABOUTME: Decoding of ERDDAP search and dataset index responses
# ABOUTME: Classifies each hit as griddap or tabledap and filters on the requested kind

from dataclasses import dataclass, field
from typing import Dict, List

import pandas as pd

from noaa_fetch.external_apis.erddap_info import clean_column_names

DATASET_KINDS = ("tabledap", "griddap")


@dataclass
class ErddapSearch:
    """Search hits of one kind (``info``) plus every raw row as a dict (``alldata``)."""

    info: pd.DataFrame
    alldata: List[Dict] = field(repr=False)

    def __repr__(self):
        return f"{len(self.info)} results, showing first 20\n{self.info.head(20)}"


def check_which(which: str) -> str:
    if which not in DATASET_KINDS:
        raise ValueError(f"which must be one of {DATASET_KINDS}, got {which!r}")
    return which


def classify(row: Dict) -> str:
    """A dataset is griddap when its griddap link is non-empty."""
    return "tabledap" if not row.get("griddap") else "griddap"


def search_from_json(payload: Dict, which: str = "griddap") -> ErddapSearch:
    """
    Decode a ``search/index.json`` response.

    Args:
        payload: Decoded JSON response
        which: Kind of dataset to keep, "griddap" or "tabledap"

    Returns:
        ErddapSearch whose ``info`` has title and dataset_id columns
    """
    check_which(which)
    table = payload["table"]
    colnames = clean_column_names(table["columnNames"])
    rows = [dict(zip(colnames, row)) for row in table["rows"]]

    info = pd.DataFrame(
        [
            {"title": row.get("title"), "dataset_id": row.get("dataset_id")}
            for row in rows
            if classify(row) == which
        ],
        columns=["title", "dataset_id"],
    )
    return ErddapSearch(info=info, alldata=rows)


def index_to_frame(payload: Dict) -> pd.DataFrame:
    """Decode a ``tabledap/index.json`` or ``griddap/index.json`` listing."""
    table = payload["table"]
    return pd.DataFrame(table["rows"], columns=table["columnNames"])
