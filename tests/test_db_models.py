"""Tests for element graph models."""

import json

import pytest
from pydantic import ValidationError

from reverse_relations.core.field import SaveContext
from reverse_relations.db.models import (
    CandidateSource,
    EagerLoadMap,
    EagerLoadPair,
    FieldConfig,
    RelationEdge,
    TargetElement,
)


class TestFieldConfig:
    """Tests for FieldConfig."""

    def _row(self, settings):
        return {
            "id": 2,
            "uid": "rev",
            "name": "Rev",
            "handle": "rev",
            "type": "reverse_relations.ReverseUsers",
            "settings": settings,
        }

    def test_from_row_with_json_settings(self):
        settings = json.dumps({"target_field_uid": "fwd", "input_sources": ["group:a"]})
        config = FieldConfig.from_row(self._row(settings))
        assert config.target_field_uid == "fwd"
        assert config.input_sources == ["group:a"]

    def test_from_row_without_settings(self):
        config = FieldConfig.from_row(self._row(None))
        assert config.target_field_uid is None
        assert config.input_sources == "*"

    def test_missing_input_sources_means_all(self):
        config = FieldConfig.from_row(self._row({"input_sources": None}))
        assert config.input_sources == "*"

    def test_duplicate_specifiers_collapse_in_order(self):
        config = FieldConfig.from_row(self._row({"input_sources": ["group:b", "group:a", "group:b"]}))
        assert config.input_sources == ["group:b", "group:a"]

    def test_rejects_bare_string_sources(self):
        with pytest.raises(ValidationError):
            FieldConfig.from_row(self._row({"input_sources": "group:a"}))


class TestTargetElement:
    """Tests for TargetElement."""

    def test_canonical_element(self):
        element = TargetElement(id=5, site_id=1)
        assert not element.is_derivative
        assert element.effective_canonical_id == 5

    def test_self_referencing_canonical_id(self):
        assert not TargetElement(id=5, canonical_id=5).is_derivative

    def test_draft(self):
        draft = TargetElement(id=9, site_id=1, canonical_id=5)
        assert draft.is_derivative
        assert draft.effective_canonical_id == 5


class TestRelationEdge:
    """Tests for RelationEdge."""

    def test_site_agnostic_by_default(self):
        edge = RelationEdge(field_id=1, source_id=10, target_id=100)
        assert edge.source_site_id is None
        assert edge.sort_order == 1


class TestCandidateSource:
    """Tests for CandidateSource."""

    def test_trashed(self):
        source = CandidateSource(id=1, date_deleted="2024-03-01T12:00:00")
        assert source.is_trashed
        assert not CandidateSource(id=2).is_trashed


class TestEagerLoadMap:
    """Tests for EagerLoadMap."""

    def test_targets_for(self):
        eager = EagerLoadMap(
            element_type="users",
            pairs=[
                EagerLoadPair(source=1, target=30),
                EagerLoadPair(source=2, target=10),
                EagerLoadPair(source=1, target=20),
            ],
        )
        assert eager.targets_for(1) == [30, 20]
        assert eager.targets_for(3) == []


class TestSaveContext:
    """Tests for SaveContext."""

    def test_stale_ids_deduplicated(self):
        context = SaveContext(
            old_sources={"f": [CandidateSource(id=1), CandidateSource(id=1), CandidateSource(id=2)]}
        )
        assert context.stale_source_ids("f", []) == [1, 2]
