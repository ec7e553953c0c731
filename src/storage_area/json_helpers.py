"""Public JSON type definitions for storage-area.

Only exports types that users need for annotating packed envelopes.
Internal helper functions are in storage_area._internal.json_helpers.
"""

from typing import Dict, List, Union

# Represents any valid JSON value
JSONValue = Union[
    None,
    bool,
    int,
    float,
    str,
    List["JSONValue"],
    Dict[str, "JSONValue"],
]

# An encapsulated value: JSONValue, plus raw bytes when produced in binary mode
EnvelopeValue = Union[
    None,
    bool,
    int,
    float,
    str,
    bytes,
    List["EnvelopeValue"],
    Dict[str, "EnvelopeValue"],
]
