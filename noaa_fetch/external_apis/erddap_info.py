# ABOUTME: ERDDAP dataset descriptor built from the info/<dataset>/index.json endpoint
# ABOUTME: Records dimension order, variables with their actual ranges, and all attributes

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd


@dataclass(frozen=True)
class ErddapInfo:
    """
    Description of one ERDDAP dataset.

    Attributes:
        datasetid: ERDDAP dataset id
        dimensions: Dimension names in the order the server declares them
        variables: DataFrame with variable_name, data_type, min, max
        alldata: Attribute table per variable/dimension name, plus NC_GLOBAL
    """

    datasetid: str
    dimensions: List[str]
    variables: pd.DataFrame
    alldata: Dict[str, pd.DataFrame] = field(repr=False)

    @property
    def variable_names(self) -> List[str]:
        return self.variables["variable_name"].tolist()

    def attribute(self, name: str, attribute_name: str) -> Optional[str]:
        """Value of one attribute of a variable/dimension (or NC_GLOBAL), or None."""
        table = self.alldata.get(name)
        if table is None:
            return None
        match = table.loc[table["attribute_name"] == attribute_name, "value"]
        if match.empty:
            return None
        return match.iloc[0]

    def global_attribute(self, attribute_name: str) -> Optional[str]:
        return self.attribute("NC_GLOBAL", attribute_name)

    def actual_range(self, name: str) -> Optional[List[str]]:
        """The ``actual_range`` attribute split into [min, max] strings."""
        value = self.attribute(name, "actual_range")
        if value is None:
            return None
        return [re.sub(r"\s+", "", part) for part in str(value).split(",")]

    def __repr__(self):
        lines = [f"<ERDDAP info> {self.datasetid}"]
        lines.append(" Dimensions (range): ")
        for dim in self.dimensions:
            rng = self.actual_range(dim) or ["", ""]
            lines.append(f"     {dim}: ({', '.join(rng)})")
        lines.append(" Variables: ")
        for _, row in self.variables.iterrows():
            lines.append(f"     {row['variable_name']}: ({row['min']}, {row['max']})")
        return "\n".join(lines)


def clean_column_names(names: List[str]) -> List[str]:
    """Lowercase ERDDAP column names and replace whitespace with underscores."""
    return [re.sub(r"\s", "_", name.lower()) for name in names]


def table_to_frame(payload: Dict) -> pd.DataFrame:
    """Turn an ERDDAP JSON ``table`` payload into a DataFrame with cleaned column names."""
    table = payload["table"]
    return pd.DataFrame(table["rows"], columns=clean_column_names(table["columnNames"]))


def info_from_json(payload: Dict, datasetid: str) -> ErddapInfo:
    """
    Build an ErddapInfo from the JSON returned by ``info/<datasetid>/index.json``.

    Args:
        payload: Decoded JSON response
        datasetid: Dataset id the payload describes

    Returns:
        ErddapInfo
    """
    df = table_to_frame(payload)

    dimensions = df.loc[df["row_type"] == "dimension", "variable_name"].tolist()

    variables = df.loc[df["row_type"] == "variable", ["variable_name", "data_type"]]
    variables = variables.reset_index(drop=True)

    ranges = df.loc[df["attribute_name"] == "actual_range", ["variable_name", "value"]]
    bounds = {
        name: [part.strip() for part in str(value).split(",")]
        for name, value in zip(ranges["variable_name"], ranges["value"])
    }
    variables["min"] = [bounds.get(name, [""])[0] for name in variables["variable_name"]]
    variables["max"] = [bounds.get(name, ["", ""])[-1] for name in variables["variable_name"]]

    alldata = {}
    for name, group in df.groupby("variable_name", sort=False):
        alldata[name] = group[["attribute_name", "data_type", "value"]].reset_index(drop=True)

    return ErddapInfo(datasetid=datasetid, dimensions=dimensions, variables=variables, alldata=alldata)
