"""
Tests for Pydantic data models in src.data.models.
"""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from src.data.models import (
    CandidateMatch,
    EmbeddingRecord,
    InternProfile,
    JobPost,
    MatchResult,
    sort_key,
)
from src.utils.constants import UNKNOWN_COMPANY


# ── BaseDocument ids ─────────────────────────────────────────────────────────


class TestDocumentIds:
    def test_object_id_is_stringified(self):
        oid = ObjectId()
        assert InternProfile(_id=oid).id == str(oid)

    def test_populate_by_name(self):
        assert JobPost(id="j1").id == "j1"

    def test_id_required(self):
        with pytest.raises(ValidationError):
            JobPost(title="No id")

    def test_public_dump_uses_id(self):
        data = InternProfile(_id="i1", skills=["Go"]).model_dump_public()
        assert data["id"] == "i1"
        assert "_id" not in data


# ── JobPost / InternProfile ──────────────────────────────────────────────────


class TestEntities:
    def test_null_lists_become_empty(self):
        job = JobPost(_id="j1", requirements=None, responsibilities=None)
        assert job.requirements == []
        assert job.responsibilities == []
        assert InternProfile(_id="i1", skills=None).skills == []

    def test_single_string_list_field(self):
        assert InternProfile(_id="i1", skills="Python").skills == ["Python"]

    def test_company_defaults(self):
        assert JobPost(_id="j1").company == UNKNOWN_COMPANY
        assert JobPost(_id="j1", company=None).company == UNKNOWN_COMPANY
        assert JobPost(_id="j1", company="Acme").company == "Acme"

    def test_unknown_fields_ignored(self):
        job = JobPost(_id="j1", title="T", views=10)
        assert not hasattr(job, "views")


# ── Match results ────────────────────────────────────────────────────────────


class TestMatchResult:
    def test_from_job_sets_has_applied(self):
        job = JobPost(_id="j1", title="T", applicant_ids=["i1", "i9"])

        assert MatchResult.from_job(job, 0.8, "i1").has_applied is True
        assert MatchResult.from_job(job, 0.8, "i2").has_applied is False
        assert MatchResult.from_job(job, 0.8).has_applied is False

    def test_applicants_are_not_serialized(self):
        job = JobPost(_id="j1", applicant_ids=["i1"])
        data = MatchResult.from_job(job, 0.5, "i1").model_dump(mode="json")

        assert "applicant_ids" not in data
        assert data["similarity"] == 0.5
        assert data["id"] == "j1"

    def test_sort_key(self):
        items = [
            CandidateMatch(_id="b", similarity=0.4),
            CandidateMatch(_id="a", similarity=0.4),
            CandidateMatch(_id="c", similarity=0.9),
        ]
        assert [i.id for i in sorted(items, key=sort_key)] == ["c", "a", "b"]


def test_embedding_record_dimension():
    record = EmbeddingRecord(entity_id="x", text_snapshot="doc", embedding=[0.6, 0.8])
    assert record.dimension == 2
    assert record.updated_at is not None
