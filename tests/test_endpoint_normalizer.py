"""Unit tests for endpoint key normalization."""

import pytest

from governor.utils.endpoint_normalizer import (
    UNKNOWN_KEY,
    RequestDescriptor,
    RequestShape,
    normalize,
)


@pytest.mark.parametrize(
    ("descriptor", "expected"),
    [
        (RequestDescriptor("businesses", RequestShape.EXISTENCE_CHECK), "businesses_existence_check"),
        (RequestDescriptor("mail_contacts", RequestShape.BY_OWNER), "mail_contacts_by_business"),
        (RequestDescriptor("mail_campaigns"), "mail_campaigns"),
    ],
)
def test_normalize_by_shape(descriptor: RequestDescriptor, expected: str) -> None:
    assert normalize(descriptor) == expected


@pytest.mark.parametrize(
    "descriptor",
    [
        None,
        "/rest/v1/businesses?select=id&limit=1",
        {"resource": "businesses"},
        RequestDescriptor(None),
        RequestDescriptor("   "),
    ],
)
def test_unresolvable_descriptors_collapse_to_unknown(descriptor) -> None:
    assert normalize(descriptor) == UNKNOWN_KEY


def test_normalize_is_deterministic() -> None:
    descriptor = RequestDescriptor.from_query("businesses", columns="id", limit=1)

    assert normalize(descriptor) == normalize(descriptor)
    assert normalize(descriptor) == normalize(
        RequestDescriptor.from_query("businesses", columns="id", limit=1)
    )


class TestFromQuery:
    def test_minimal_single_row_read_is_existence_check(self) -> None:
        descriptor = RequestDescriptor.from_query(
            "businesses", columns="id", filters={"id": 7}, limit=1
        )
        assert descriptor.shape == RequestShape.EXISTENCE_CHECK

    def test_existence_check_wins_over_owner_filter(self) -> None:
        descriptor = RequestDescriptor.from_query(
            "mail_contacts", columns="id", filters={"business_id": 3}, limit=1
        )
        assert descriptor.shape == RequestShape.EXISTENCE_CHECK

    def test_owner_filter(self) -> None:
        descriptor = RequestDescriptor.from_query(
            "mail_contacts", columns="*", filters={"business_id": 3}
        )
        assert normalize(descriptor) == "mail_contacts_by_business"

    def test_full_select_is_plain(self) -> None:
        descriptor = RequestDescriptor.from_query("user_data", columns="*", limit=1)
        assert descriptor.shape == RequestShape.PLAIN
        assert normalize(descriptor) == "user_data"

    def test_custom_owner_field(self) -> None:
        descriptor = RequestDescriptor.from_query(
            "orders", filters={"tenant_id": 1}, owner_field="tenant_id"
        )
        assert descriptor.shape == RequestShape.BY_OWNER
