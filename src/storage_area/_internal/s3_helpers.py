"""Helper functions and output types for S3 operations.

These functions are not part of the public API and should only be used internally.
"""

from typing import List, Mapping, Optional, TypedDict

from botocore.exceptions import ClientError  # type: ignore[import-untyped]

# Error codes S3 (and MinIO) use for a missing object
NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


def get_error_code(error: ClientError) -> str:
    """Extract the service error code from a botocore ClientError."""
    response: Mapping[str, Mapping[str, object]] = error.response  # type: ignore[misc]
    return str(response.get("Error", {}).get("Code", ""))


def is_not_found(error: ClientError) -> bool:
    """True if error means the requested object does not exist."""
    return get_error_code(error) in NOT_FOUND_CODES


def assert_aws_field_present(value: Optional[object], field_name: str) -> object:
    """Assert that a field marked optional by botocore types is actually present.

    The generated types mark many fields as optional even though AWS always
    returns them.

    Raises:
        ValueError: If value is None (indicates SDK bug or API change)
    """
    if value is None:
        raise ValueError(
            f"botocore type bug: {field_name} is None but should always be present. "
            "This may indicate an AWS API change or SDK bug."
        )
    return value


class GetObjectOutput(TypedDict):
    """GetObjectOutput with the body already read."""

    body: bytes


class ListedObject(TypedDict):
    """One entry of ListObjectsV2Output.Contents."""

    key: str
    size: int


class ListObjectsV2Output(TypedDict):
    """ListObjectsV2Output with corrected field optionality."""

    contents: List[ListedObject]
    is_truncated: bool
    next_continuation_token: Optional[str]


class ListObjectsV2Outputs:
    """Helper functions for ListObjectsV2Output."""

    @staticmethod
    def from_aiobotocore(response: Mapping[str, object]) -> ListObjectsV2Output:
        """Convert aiobotocore ListObjectsV2Output to our ListObjectsV2Output type.

        Contents is omitted by S3 when a page is empty.
        """
        raw_contents: List[Mapping[str, object]] = response.get("Contents") or []  # type: ignore[assignment]
        contents: List[ListedObject] = [
            {
                "key": str(assert_aws_field_present(obj.get("Key"), "Object.Key")),
                "size": int(str(obj.get("Size", 0))),
            }
            for obj in raw_contents
        ]
        token = response.get("NextContinuationToken")
        return {
            "contents": contents,
            "is_truncated": bool(response.get("IsTruncated", False)),
            "next_continuation_token": str(token) if token is not None else None,
        }
