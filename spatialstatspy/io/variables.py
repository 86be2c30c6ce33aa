"""
Data-fetch boundary.

Statistics never read storage themselves. They call :func:`query_field` with
an opaque source and a field name and receive one number per observation, in
the order of the weights matrix keys. Supported sources:

- pandas.DataFrame: a column; rows taken in order, or aligned on a key column
- mapping: field -> sequence of numbers
- callable: ``source(field)`` -> sequence of numbers

The returned length is NOT adjusted; statistics reject any length mismatch.
"""

from collections.abc import Callable, Hashable, Mapping, Sequence
from typing import Optional

import numpy as np
import pandas as pd

from spatialstatspy.core.weights import WeightsMatrix
from spatialstatspy.errors import DimensionMismatchError, UnknownNeighborError


def query_field(
    source,
    field: Hashable,
    keys: Optional[Sequence[Hashable]] = None,
    key_column: Optional[Hashable] = None,
) -> np.ndarray:
    """
    Fetch one numeric field from a data source.

    Parameters
    ----------
    source : pandas.DataFrame, mapping or callable
        Data source.
    field : hashable
        Column or field to fetch.
    keys : sequence, optional
        Observation keys. Required with ``key_column``.
    key_column : hashable, optional
        DataFrame column holding observation keys. When given, the returned
        values follow ``keys`` order; a key without a row raises.

    Returns
    -------
    np.ndarray
        Float values.

    Examples
    --------
    >>> df = pd.DataFrame({"id": [2, 1], "pop": [20.0, 10.0]})
    >>> query_field(df, "pop", keys=[1, 2], key_column="id")
    array([10., 20.])
    """
    if isinstance(source, pd.DataFrame):
        if field not in source.columns:
            raise KeyError(f"Field {field!r} not found. Available: {list(source.columns)}")
        if key_column is None:
            values = source[field].to_numpy()
        else:
            if keys is None:
                raise ValueError("keys are required when key_column is given")
            column = source.set_index(key_column)[field]
            if not column.index.is_unique:
                raise ValueError(f"Key column {key_column!r} contains duplicate keys")
            missing = [key for key in keys if key not in column.index]
            if missing:
                raise DimensionMismatchError(
                    f"{len(missing)} keys have no row in the source, e.g. {missing[0]!r}"
                )
            values = column.loc[list(keys)].to_numpy()
    elif isinstance(source, Mapping):
        if field not in source:
            raise KeyError(f"Field {field!r} not found. Available: {list(source.keys())}")
        values = source[field]
    elif isinstance(source, Callable):
        values = source(field)
    else:
        raise TypeError(f"Unsupported data source type: {type(source).__name__}")

    try:
        return np.asarray(values, dtype=np.float64).ravel()
    except (TypeError, ValueError):
        raise ValueError(f"Field {field!r} is not numeric") from None


def query_fields(
    source,
    fields: Sequence[Hashable],
    keys: Optional[Sequence[Hashable]] = None,
    key_column: Optional[Hashable] = None,
) -> np.ndarray:
    """
    Fetch several fields as an (n, k) matrix, one column per field.

    Raises
    ------
    DimensionMismatchError
        If the fields have different lengths.
    """
    columns = [query_field(source, field, keys, key_column) for field in fields]
    lengths = {len(column) for column in columns}
    if len(lengths) > 1:
        raise DimensionMismatchError(f"Fields {list(fields)} have different lengths {lengths}")
    return np.column_stack(columns)


def weights_from_frame(
    frame: pd.DataFrame,
    source: Hashable = "source",
    neighbor: Hashable = "neighbor",
    weight: Optional[Hashable] = "weight",
    keys: Optional[Sequence[Hashable]] = None,
) -> WeightsMatrix:
    """
    Build a WeightsMatrix from an edge list.

    Parameters
    ----------
    frame : pandas.DataFrame
        One row per directed edge ``source -> neighbor``.
    source, neighbor : hashable
        Columns holding the observation keys of each edge.
    weight : hashable, optional
        Column of edge weights. When None or absent, every edge weighs 1.
    keys : sequence, optional
        Key order. Defaults to every key in order of first appearance
        (sources first). Keys without outgoing edges get empty rows.

    Returns
    -------
    WeightsMatrix

    Examples
    --------
    >>> edges = pd.DataFrame({"source": ["a", "b"], "neighbor": ["b", "a"]})
    >>> weights_from_frame(edges).rows["a"]
    (('b', 1.0),)
    """
    sources = frame[source].tolist()
    neighbors = frame[neighbor].tolist()
    if weight is not None and weight in frame.columns:
        weights = frame[weight].astype(np.float64).tolist()
    else:
        weights = [1.0] * len(frame)

    if keys is None:
        keys = list(dict.fromkeys(sources + neighbors))

    rows = {key: [] for key in keys}
    for src, nbr, w in zip(sources, neighbors, weights):
        if src not in rows:
            raise UnknownNeighborError(f"Edge source {src!r} is not one of the keys")
        rows[src].append({"id": nbr, "weight": w})

    return WeightsMatrix(rows, len(keys))
