# ABOUTME: ERDDAP griddap query construction and response decoding
# ABOUTME: Turns per-dimension ranges into DAP bracket constraints and reads CSV/NetCDF replies

import re
from dataclasses import dataclass
from io import BytesIO, StringIO
from typing import Mapping, Optional, Sequence, Union

import pandas as pd
import xarray as xr

from noaa_fetch.core.cache import file_info, normalize_fmt
from noaa_fetch.external_apis.erddap_info import ErddapInfo

Stride = Union[int, Sequence[int]]


@dataclass
class ErddapGrid:
    """Decoded griddap response. ``path`` is the cache file or "memory"."""

    data: pd.DataFrame
    datasetid: str
    path: str

    def __repr__(self, n: int = 10):
        lines = [f"<NOAA ERDDAP griddap> {self.datasetid}", f"   Path: [{self.path}]"]
        if self.path != "memory":
            finfo = file_info(self.path)
            lines.append(f"   Last updated: [{finfo['mtime']}]")
            lines.append(f"   File size:    [{finfo['size']}]")
        lines.append(f"   Dimensions:   [{self.data.shape[0]} X {self.data.shape[1]}]\n")
        lines.append(str(self.data.head(n)))
        return "\n".join(lines)


def field_handler(fields, variables: Sequence[str]):
    """
    Resolve the ``fields`` argument against a dataset's variables.

    "all" (or None) expands to every variable, "none" selects dimensions
    only, and a list of known variable names is returned as given.
    """
    if fields is None:
        fields = "all"
    if isinstance(fields, str):
        fields = [fields]
    fields = list(fields)

    if fields == ["all"]:
        return list(variables)
    if fields == ["none"]:
        return fields

    unknown = [f for f in fields if f not in variables]
    if unknown:
        raise ValueError(
            f"Unknown fields {unknown}; choose from {list(variables)} or 'all'/'none'"
        )
    return fields


def _is_vector(stride) -> bool:
    return hasattr(stride, "__len__") and not isinstance(stride, str)


def dimension_range(info: ErddapInfo, dim: str, dimargs: Mapping):
    """Start and stop for one dimension: the caller's pair, else the dataset's recorded range."""
    if dim in dimargs:
        bounds = list(dimargs[dim])
        if len(bounds) != 2:
            raise ValueError(f"{dim} must be given as a (start, stop) pair, got {dimargs[dim]!r}")
        return bounds

    if dim == "time":
        start = info.global_attribute("time_coverage_start")
        end = info.global_attribute("time_coverage_end")
        if start is not None and end is not None:
            return [start, end]

    bounds = info.actual_range(dim)
    if bounds is None or len(bounds) != 2:
        raise ValueError(f"No range recorded for dimension {dim!r} in {info.datasetid}; pass one explicitly")
    return bounds


def parse_dimension_args(
    info: ErddapInfo, dim: str, stride: Stride, dimargs: Mapping, with_name: bool = False
) -> str:
    """
    DAP bracket constraint for one dimension, e.g. ``[(21):1:(18)]``.

    Args:
        info: Dataset descriptor
        dim: Dimension name
        stride: One stride for every dimension, or one per dimension in dataset order
        dimargs: User supplied (start, stop) pairs keyed by dimension name
        with_name: Prefix the dimension name (``latitude[(21):1:(18)]``)
    """
    start, stop = dimension_range(info, dim, dimargs)

    if _is_vector(stride):
        if len(stride) != len(info.dimensions):
            raise ValueError("Your stride vector must equal length of dimension variables")
        step = stride[info.dimensions.index(dim)]
    else:
        step = stride

    fragment = f"[({start}):{step}:({stop})]"
    return f"{dim}{fragment}" if with_name else fragment


def build_grid_query(info: ErddapInfo, dimargs: Mapping, fields="all", stride: Stride = 1) -> str:
    """
    Full griddap query (unencoded) for a dataset.

    With ``fields="none"`` only the named dimension constraints are sent;
    otherwise each variable is followed by every dimension constraint.
    """
    unknown_dims = [d for d in dimargs if d not in info.dimensions]
    if unknown_dims:
        raise ValueError(f"Unknown dimensions {unknown_dims}; {info.datasetid} has {info.dimensions}")

    variables = field_handler(fields, info.variable_names)
    dims = info.dimensions

    if variables == ["none"]:
        return ",".join(parse_dimension_args(info, d, stride, dimargs, with_name=True) for d in dims)

    constraints = "".join(parse_dimension_args(info, d, stride, dimargs) for d in dims)
    return ",".join(f"{var}{constraints}" for var in variables)


def read_erddap_csv(source) -> pd.DataFrame:
    """ERDDAP CSV: one header row of names, one of units, then data."""
    return pd.read_csv(source, skiprows=[1])


def read_upwell(source, fmt: str) -> pd.DataFrame:
    """
    Decode an ERDDAP response held in a file path or a requests Response.

    Args:
        source: Path of a cached file, or a Response kept in memory
        fmt: "csv" or "nc"
    """
    fmt = normalize_fmt(fmt)
    in_memory = hasattr(source, "content")

    if fmt == "csv":
        return read_erddap_csv(StringIO(source.text) if in_memory else source)

    # ERDDAP .nc output is NetCDF-3, which the scipy backend reads from files and buffers
    nc_source = BytesIO(source.content) if in_memory else source
    with xr.open_dataset(nc_source, engine="scipy") as ds:
        return ds.to_dataframe().reset_index()


def check_response_erddap(status_code: int, body: str) -> Optional[str]:
    """
    Error message for a failed ERDDAP reply, or None when it succeeded.

    ERDDAP reports failures as ``Error {code=404; message="...";}``.
    """
    is_error_page = body.lstrip().startswith("Error")
    if status_code == 200 and not is_error_page:
        return None

    match = re.search(r'message\s*=\s*"(.*?)";', body, re.S)
    message = match.group(1) if match else body.strip()[:200]
    return f"ERDDAP request failed (status {status_code}): {message}"
