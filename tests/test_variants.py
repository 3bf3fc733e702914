"""Tests for recall_kg.resolve.variants and normalize."""

import pytest

from recall_kg.resolve.normalize import (
    extract_domain,
    extract_email,
    is_freemail,
    match_key,
    normalize_name,
)
from recall_kg.resolve.variants import (
    NicknameTable,
    acronym,
    are_abbreviation_variants,
    are_nickname_variants,
)


class TestNormalize:
    """Test text normalization helpers."""

    def test_normalize_name(self):
        """Lowercase, punctuation stripped, whitespace collapsed."""
        assert normalize_name("  Robert   O'Brien, Jr. ") == "robert obrien jr"

    def test_normalize_transliterates(self):
        assert normalize_name("José Müller") == "jose muller"

    def test_extract_email_from_context(self):
        assert extract_email("From: Bob <Bob.M@Acme.com>") == "bob.m@acme.com"

    def test_extract_email_missing(self):
        assert extract_email("no address here") is None
        assert extract_email(None) is None

    def test_extract_domain(self):
        assert extract_domain("bob@acme.com") == "acme.com"
        assert extract_domain("not-an-email") == ""

    def test_freemail(self):
        assert is_freemail("gmail.com")
        assert is_freemail("mail.yahoo.co.uk")
        assert not is_freemail("acme.com")

    def test_match_key(self):
        assert match_key("Bob  Smith") == match_key("bob_smith") == "bob_smith"


class TestNicknames:
    """Test nickname lookups with the bundled table."""

    def test_nickname_of_full_name(self):
        assert are_nickname_variants("Robert Matsuoka", "Bob")

    def test_full_name_of_nickname(self):
        assert are_nickname_variants("Bob Matsuoka", "Robert Matsuoka")

    def test_same_first_name(self):
        assert are_nickname_variants("Bob Smith", "bob jones")

    def test_unrelated_names(self):
        assert not are_nickname_variants("Robert", "Richard")

    def test_two_nicknames_are_not_linked(self):
        """Bob and Rob share a full name but are not nicknames of each other."""
        assert not are_nickname_variants("Bob", "Rob")

    def test_bundled_table_contents(self):
        table = NicknameTable.default()
        assert "bob" in table
        assert "robert" in table
        assert "bob" in table.nicknames_for("robert")
        assert table.full_names_for("ted") == ["edward"]
        assert len(table) >= 30

    def test_canonical_forms(self):
        table = NicknameTable.default()
        assert table.canonical_forms("bob") == {"bob", "robert"}
        assert table.canonical_forms("zelda") == {"zelda"}


class TestCustomNicknameTable:
    """Test loading and extending nickname tables."""

    def test_from_yaml(self, tmp_dir):
        path = tmp_dir / "nicknames.yaml"
        path.write_text("nicknames:\n  Zebulon: [Zeb]\n")
        table = NicknameTable.from_yaml(path)
        assert table.are_variants("Zeb Pike", "Zebulon Pike")
        assert not table.are_variants("Bob", "Robert")

    def test_from_yaml_bare_mapping(self, tmp_dir):
        """A file without the nicknames key is read as the mapping itself."""
        path = tmp_dir / "nicknames.yaml"
        path.write_text("zebulon: [zeb]\n")
        assert NicknameTable.from_yaml(path).are_variants("zeb", "zebulon")

    def test_missing_file_raises(self, tmp_dir):
        with pytest.raises(ValueError, match="not found"):
            NicknameTable.from_yaml(tmp_dir / "missing.yaml")

    def test_malformed_file_raises(self, tmp_dir):
        path = tmp_dir / "nicknames.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            NicknameTable.from_yaml(path)

    def test_extend_keeps_existing(self):
        table = NicknameTable.default().extend({"zebulon": ["zeb"], "robert": ["robin"]})
        assert table.are_variants("zeb", "zebulon")
        assert table.are_variants("robin", "robert")
        assert table.are_variants("bob", "robert")
        # The bundled table is unchanged
        assert not NicknameTable.default().are_variants("zeb", "zebulon")


class TestAbbreviations:
    """Test acronym matching for companies."""

    def test_acronym(self):
        assert acronym("International Business Machines") == "ibm"

    def test_abbreviation_either_order(self):
        assert are_abbreviation_variants("IBM", "International Business Machines")
        assert are_abbreviation_variants("International Business Machines", "IBM")

    def test_wrong_acronym(self):
        assert not are_abbreviation_variants("IBM", "Intel Corporation")

    def test_needs_one_single_token_side(self):
        assert not are_abbreviation_variants("Acme Corp", "Acme Corporation")
        assert not are_abbreviation_variants("IBM", "Apple")
