"""Tests for searchwire.tools.templates module."""

from __future__ import annotations

import pytest

from searchwire.tools.templates import (
    DEFAULT_ANALYZER,
    TEMPLATES,
    VECTOR_PROFILE,
    build_from_template,
    clone_definition,
    resolve_analyzer,
    validate_index_definition,
)


class TestBuildFromTemplate:
    """Tests for template expansion."""

    @pytest.mark.parametrize("template", TEMPLATES)
    def test_templates_are_valid(self, template):
        """Every template produces a definition that passes validation."""
        definition = build_from_template(template, "my-index")
        assert definition["name"] == "my-index"
        assert validate_index_definition(definition) == []

    def test_language_analyzer(self):
        """Searchable text fields get the language analyzer."""
        definition = build_from_template("document_search", "docs", language="French")
        fields = {f["name"]: f for f in definition["fields"]}
        assert fields["content"]["analyzer"] == "fr.microsoft"
        assert fields["category"]["analyzer"] == DEFAULT_ANALYZER
        assert "analyzer" not in fields["id"]

    def test_hybrid_search_vectors(self):
        """hybrid_search carries vector and semantic configuration."""
        definition = build_from_template("hybrid_search", "rag", vector_dimensions=768)
        vector = next(f for f in definition["fields"] if f["name"] == "contentVector")
        assert vector["dimensions"] == 768
        assert vector["vectorSearchProfile"] == VECTOR_PROFILE
        assert definition["vectorSearch"]["profiles"][0]["name"] == VECTOR_PROFILE
        assert definition["semantic"]["configurations"][0]["prioritizedFields"]["titleField"] == {"fieldName": "title"}

    def test_templates_do_not_share_state(self):
        """Building twice returns independent definitions."""
        first = build_from_template("product_catalog", "a", language="german")
        second = build_from_template("product_catalog", "b")
        assert first["fields"][1]["analyzer"] == "de.microsoft"
        assert second["fields"][1]["analyzer"] == DEFAULT_ANALYZER

    def test_unknown_template(self):
        """Unknown templates are rejected."""
        with pytest.raises(ValueError):
            build_from_template("blog", "x")


class TestHelpers:
    """Tests for analyzer resolution and cloning."""

    def test_resolve_analyzer(self):
        """Known languages map to Microsoft analyzers; others to standard."""
        assert resolve_analyzer("english") == "en.microsoft"
        assert resolve_analyzer("klingon") == DEFAULT_ANALYZER
        assert resolve_analyzer(None) is None

    def test_clone_definition(self):
        """Cloning renames and drops service metadata without aliasing."""
        source = {"@odata.etag": "0x1", "@odata.context": "ctx", "name": "src", "fields": [{"name": "id"}]}
        clone = clone_definition(source, "copy")
        assert clone == {"name": "copy", "fields": [{"name": "id"}]}
        clone["fields"][0]["name"] = "changed"
        assert source["fields"][0]["name"] == "id"


class TestValidateIndexDefinition:
    """Tests for definition checks."""

    def test_no_fields(self):
        """A definition needs fields."""
        assert validate_index_definition({"name": "x"}) == ["Index must define at least one field"]

    def test_key_rules(self):
        """Exactly one string key is required."""
        no_key = {"fields": [{"name": "id", "type": "Edm.String"}]}
        assert "exactly one key field (found 0)" in validate_index_definition(no_key)[0]
        int_key = {"fields": [{"name": "id", "type": "Edm.Int32", "key": True}]}
        assert validate_index_definition(int_key) == ["The key field must be of type Edm.String"]

    def test_field_rules(self):
        """Names, duplicates, vectors and sortable collections are checked."""
        definition = {
            "fields": [
                {"name": "id", "type": "Edm.String", "key": True},
                {"name": "id", "type": "Edm.String"},
                {"name": "1bad", "type": "Edm.String"},
                {"name": "vec", "type": "Collection(Edm.Single)"},
                {"name": "tags", "type": "Collection(Edm.String)", "sortable": True},
            ]
        }
        problems = validate_index_definition(definition)
        assert "Duplicate field name: id" in problems
        assert any(p.startswith("Invalid field name: '1bad'") for p in problems)
        assert "Vector field vec must have dimensions > 0" in problems
        assert "Vector field vec must have a vectorSearchProfile" in problems
        assert "Collection field tags cannot be sortable" in problems

    def test_semantic_title(self):
        """The semantic title field must be searchable."""
        definition = {
            "fields": [{"name": "id", "type": "Edm.String", "key": True}],
            "semantic": {"configurations": [{"prioritizedFields": {"titleField": {"fieldName": "title"}}}]},
        }
        assert validate_index_definition(definition) == ["Semantic title field title must exist and be searchable"]
