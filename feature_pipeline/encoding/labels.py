# feature_pipeline/encoding/labels.py
"""
Binary label encoding.

Strict policy: only recognized true/false forms map to 1/0. Anything else
encodes to None and the row is left out of training.
"""
from typing import Any, Optional

import numpy as np

from feature_pipeline.encoding.schema import is_number

TRUE_LABEL = "True"
FALSE_LABEL = "False"


def encode_label(value: Any) -> Optional[int]:
    if isinstance(value, (bool, np.bool_)):
        return int(bool(value))
    if is_number(value):
        if value == 1:
            return 1
        if value == 0:
            return 0
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text == "true":
            return 1
        if text == "false":
            return 0
    return None


def decode_label(value: int) -> str:
    return TRUE_LABEL if value else FALSE_LABEL
