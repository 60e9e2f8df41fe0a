"""Unit tests for extract source URI parsing."""

from __future__ import annotations

import pytest

from core.errors import SilverlineExtractError
from core.s3_uri import parse_s3_uri


def test_parse_s3_uri_joins_keys_below_prefix() -> None:
    """Object keys should be resolved under the trimmed prefix."""
    location = parse_s3_uri("s3://warehouse-raw/daily/2024-06-30/")

    assert location.bucket == "warehouse-raw"
    assert location.join("source_erp/orders.csv") == "daily/2024-06-30/source_erp/orders.csv"


def test_parse_s3_uri_allows_bucket_root() -> None:
    """A bare bucket reads extracts from the bucket root."""
    assert parse_s3_uri("s3://warehouse-raw").join("source_crm/customers.csv") == (
        "source_crm/customers.csv"
    )


def test_parse_s3_uri_requires_bucket() -> None:
    """A URI without a bucket is an extract error."""
    with pytest.raises(SilverlineExtractError) as error:
        parse_s3_uri("s3:///prefix")

    assert error.value.code == "E_EXTRACT_URI"
