import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import InvalidInput
from .resources import FREQUENCY_MAPS, ONEHOT_MAPPING, TARGET_MAPS, PathLike, read_json_resource

logger = logging.getLogger(__name__)

FREQ_SUFFIX = "_FreqEnc"
TARGET_SUFFIX = "_TargetEnc"

# Words R's make.names() suffixes with "." (the training pipeline named columns with it)
_R_RESERVED = frozenset(
    [
        "if", "else", "repeat", "while", "function", "for", "next", "break",
        "TRUE", "FALSE", "NULL", "Inf", "NaN", "NA", "NA_integer_", "NA_real_",
        "NA_complex_", "NA_character_", "in",
    ]
)
_INVALID_NAME_CHARS = re.compile(r"[^\w.]")
_VALID_NAME_START = re.compile(r"[^\W\d_]|\.(?!\d)")


class EncodingStrategy(str, Enum):
    """Which encoding passes run before a model sees the matrix."""

    MIXED = "mixed"
    ONEHOT_ONLY = "onehot_only"

    @classmethod
    def parse(cls, value: Any) -> "EncodingStrategy":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key == "onehot_freq_target":
            return cls.MIXED
        try:
            return cls(key)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidInput(f"Unknown encoding strategy '{value}'. Expected one of: {allowed}.") from None

    @property
    def uses_lookup_encodings(self) -> bool:
        return self is EncodingStrategy.MIXED


@dataclass(frozen=True)
class TargetMap:
    """Smoothed per-category target means with one fallback for unseen categories."""

    means: Mapping[str, float]
    global_mean: float

    def __post_init__(self):
        object.__setattr__(self, "means", MappingProxyType({str(k): float(v) for k, v in self.means.items()}))
        object.__setattr__(self, "global_mean", float(self.global_mean))


@dataclass(frozen=True)
class EncodingMaps:
    """
    Immutable lookup tables exported at training time.

    onehot    : column -> ordered categories; the last one is the reference level
    frequency : column -> {category: frequency}
    target    : column -> TargetMap
    """

    onehot: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    frequency: Mapping[str, Mapping[str, float]] = field(default_factory=dict)
    target: Mapping[str, TargetMap] = field(default_factory=dict)

    def __post_init__(self):
        onehot = {}
        for col, categories in self.onehot.items():
            categories = tuple(str(c) for c in categories)
            if not categories:
                raise ValueError(f"One-hot map for '{col}' has no categories.")
            onehot[str(col)] = categories
        frequency = {
            str(col): MappingProxyType({str(k): float(v) for k, v in table.items()})
            for col, table in self.frequency.items()
        }
        target = {}
        for col, tmap in self.target.items():
            if not isinstance(tmap, TargetMap):
                tmap = TargetMap(means=tmap["categories"], global_mean=tmap["global_mean"])
            target[str(col)] = tmap
        object.__setattr__(self, "onehot", MappingProxyType(onehot))
        object.__setattr__(self, "frequency", MappingProxyType(frequency))
        object.__setattr__(self, "target", MappingProxyType(target))


def load_encoding_maps(resources_dir: PathLike) -> EncodingMaps:
    """Read the three encoding-map resources; any missing file raises ResourceNotFound."""
    onehot = read_json_resource(resources_dir, ONEHOT_MAPPING)
    frequency = read_json_resource(resources_dir, FREQUENCY_MAPS)
    target = read_json_resource(resources_dir, TARGET_MAPS)
    maps = EncodingMaps(onehot=onehot, frequency=frequency, target=target)
    logger.info(
        "Loaded encoding maps: %d one-hot, %d frequency, %d target columns",
        len(maps.onehot), len(maps.frequency), len(maps.target),
    )
    return maps


# --------- helpers (module-level, no nesting) ---------

def make_names(value: Any) -> str:
    """Syntactically valid column suffix for a category, as R's make.names() builds it."""
    name = _INVALID_NAME_CHARS.sub(".", str(value))
    if not _VALID_NAME_START.match(name):
        name = "X" + name
    if name in _R_RESERVED:
        name += "."
    return name


def onehot_column_names(column: str, categories: Sequence[str]) -> List[str]:
    """Indicator column names for every category but the reference (last) one."""
    return [f"{column}_{make_names(c)}" for c in categories[:-1]]


def as_frame(records: Any) -> pd.DataFrame:
    """
    Normalize input into a DataFrame.

    Accepted: a DataFrame, a single record mapping, a mapping of column -> list
    of values (one row per position; scalars broadcast) or a sequence of
    record mappings.
    """
    if isinstance(records, pd.DataFrame):
        return records.copy()
    if isinstance(records, Mapping):
        if any(pd.api.types.is_list_like(v) for v in records.values()):
            try:
                return pd.DataFrame(dict(records))
            except ValueError as e:
                raise InvalidInput(f"Column lists must all have the same length ({e}).") from e
        return pd.DataFrame([dict(records)])
    if isinstance(records, Sequence) and not isinstance(records, (str, bytes)):
        rows = list(records)
        bad = [i for i, r in enumerate(rows) if not isinstance(r, Mapping)]
        if bad:
            raise InvalidInput(f"Records must be mappings of column -> value (bad rows at {bad[:5]}).")
        return pd.DataFrame([dict(r) for r in rows])
    raise InvalidInput(
        f"Expected a DataFrame, a mapping or a sequence of mappings, got {type(records).__name__}."
    )


def _column(frame: pd.DataFrame, name: str) -> pd.Series:
    """Raw column values; an absent column behaves as all-unknown."""
    if name in frame.columns:
        return frame[name]
    return pd.Series([None] * len(frame), index=frame.index, dtype=object)


# --------- main service ---------

def encode_records(
    records: Any,
    strategy: Any,
    maps: EncodingMaps,
    feature_names: Sequence[str],
) -> pd.DataFrame:
    """
    Encode raw categorical records into the numeric matrix a model was trained on.

    Parameters
    ----------
    records : DataFrame | Mapping | Sequence[Mapping]
        Raw descriptors (Tissue, Sub_Tissue, Cancer_Type, MSI_Status,
        Drug_Target, Target_Pathway). Missing columns and values are allowed.
    strategy : EncodingStrategy | str
        "mixed" runs one-hot + frequency + target passes, "onehot_only" runs
        the one-hot pass alone.
    maps : EncodingMaps
        Training-time lookup tables.
    feature_names : Sequence[str]
        Exact training feature order for the target model.

    Returns
    -------
    DataFrame
        float matrix, one row per record, columns == feature_names.
        Unseen categories encode as 0 (one-hot, frequency) or the column's
        global mean (target).
    """
    strategy = EncodingStrategy.parse(strategy)
    frame = as_frame(records)
    encoded: Dict[str, pd.Series] = {}

    # 1. one-hot, reference category never materializes
    for col, categories in maps.onehot.items():
        values = _column(frame, col)
        for category, name in zip(categories[:-1], onehot_column_names(col, categories)):
            encoded[name] = values.eq(category).fillna(False).astype(np.int64)

    if strategy.uses_lookup_encodings:
        # 2. frequency
        for col, table in maps.frequency.items():
            values = _column(frame, col)
            encoded[col + FREQ_SUFFIX] = values.map(dict(table)).astype(float).fillna(0.0)

        # 3. target, global mean for unseen
        for col, tmap in maps.target.items():
            values = _column(frame, col)
            encoded[col + TARGET_SUFFIX] = values.map(dict(tmap.means)).astype(float).fillna(tmap.global_mean)

    # 4 + 5. zero-fill absent features and fix training order
    matrix = pd.DataFrame(encoded, index=frame.index)
    matrix = matrix.reindex(columns=list(feature_names), fill_value=0.0).astype(float)

    expected = set(feature_names)
    dropped = [c for c in encoded if c not in expected]
    if dropped:
        logger.debug("Dropped %d encoded columns absent from schema: %s", len(dropped), dropped[:10])
    logger.debug("Encoded %d rows into %d features (%s)", len(matrix), matrix.shape[1], strategy.value)
    return matrix
