"""
Tests for ID Generation

Document ids sort by creation time; choice record ids and credential keys
are deterministic.
"""

import pytest

from database.id_generation import (
    generate_choice_record_id,
    generate_credential_key,
    generate_document_id,
    validate_document_id,
)
from database.paths import split_path


class TestDocumentIds:
    def test_format_is_valid(self):
        document_id = generate_document_id()
        assert validate_document_id(document_id)
        assert len(document_id) == 20

    def test_ids_sort_by_creation_time(self):
        earlier = generate_document_id(1_700_000_000_000)
        later = generate_document_id(1_700_000_000_001)
        assert earlier < later

    def test_ids_are_unique(self):
        ids = {generate_document_id(1_700_000_000_000) for _ in range(200)}
        assert len(ids) == 200

    def test_ids_are_valid_path_keys(self):
        assert split_path(f"polls/{generate_document_id()}")

    @pytest.mark.parametrize("bad", ["", "ABC", "short", None, "x" * 21])
    def test_invalid_ids(self, bad):
        assert not validate_document_id(bad)


class TestChoiceRecordIds:
    def test_deterministic(self):
        assert generate_choice_record_id("poll1", "alice") == "poll1_alice"
        assert generate_choice_record_id("poll1", "alice") == generate_choice_record_id("poll1", "alice")

    def test_requires_both_parts(self):
        with pytest.raises(ValueError):
            generate_choice_record_id("poll1", "")


class TestCredentialKeys:
    def test_case_and_whitespace_insensitive(self):
        assert generate_credential_key(" Alice@Example.com ") == generate_credential_key("alice@example.com")

    def test_is_sha256_hex(self):
        key = generate_credential_key("alice@example.com")
        assert len(key) == 64
        assert "@" not in key
