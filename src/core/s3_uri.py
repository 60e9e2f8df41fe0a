"""S3 URI parsing for extract source roots."""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import SilverlineExtractError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    prefix: str

    def join(self, relative_key: str) -> str:
        """Return the object key for a path below this prefix."""
        if not self.prefix:
            return relative_key
        return f"{self.prefix}/{relative_key}"


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an extract source URI.

    Args:
        uri: URI in format ``s3://bucket/prefix`` or ``s3://bucket``.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        SilverlineExtractError: If the URI names no bucket.
    """
    bucket, _, prefix = uri.removeprefix("s3://").partition("/")
    if not bucket:
        raise SilverlineExtractError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Provide at least a bucket name in SILVERLINE_SOURCE_URI.",
            code="E_EXTRACT_URI",
        )
    return S3Location(bucket=bucket, prefix=prefix.strip("/"))
