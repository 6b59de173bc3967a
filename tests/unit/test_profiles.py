"""
Tests for recruit_match.data.models — profiles, text derivation and load_corpus.
"""

import pytest
from bson import ObjectId
from pydantic import ValidationError

from recruit_match.data.models import (
    CandidateProfile,
    ClientProfile,
    Coverage,
    JobProfile,
    RankedResults,
    demo_corpus,
    load_corpus,
    text_hash,
)
from recruit_match.utils.constants import EntityKind, ResultStatus


@pytest.fixture
def candidate_record():
    return {
        "id": "c1",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "currentJobTitle": "Senior React developer",
        "primarySkills": ["React", "TypeScript"],
        "secondarySkills": ["Vite", "React"],
        "summary": "Builds design systems.",
        "currentLocation": "London",
    }


class TestCandidateProfile:
    def test_camel_case_keys(self, candidate_record):
        profile = CandidateProfile.model_validate(candidate_record)
        assert profile.first_name == "Ada"
        assert profile.current_job_title == "Senior React developer"

    def test_matchable_text(self, candidate_record):
        profile = CandidateProfile.model_validate(candidate_record)
        assert profile.matchable_text() == (
            "Ada Lovelace. Senior React developer. React, TypeScript, Vite. "
            "Builds design systems.. London"
        )

    def test_skills_deduplicated_in_order(self, candidate_record):
        profile = CandidateProfile.model_validate(candidate_record)
        assert profile.all_skills == ["React", "TypeScript", "Vite"]

    def test_empty_fields_are_skipped(self):
        profile = CandidateProfile(id="c2", name="Grace", title="Backend engineer")
        assert profile.matchable_text() == "Grace. Backend engineer"

    def test_full_name_preferred(self):
        profile = CandidateProfile(full_name="Grace Hopper", first_name="G")
        assert profile.display_name == "Grace Hopper"

    def test_fallback_id_is_email(self):
        profile = CandidateProfile(email="ada@example.com", name="Ada")
        assert profile.entity_id == "ada@example.com"

    def test_fallback_id_is_name_without_email(self):
        profile = CandidateProfile(first_name="Ada", last_name="Lovelace")
        assert profile.entity_id == "Ada Lovelace"

    def test_adding_skill_changes_hash(self, candidate_record):
        before = CandidateProfile.model_validate(candidate_record).matchable_text()
        candidate_record["primarySkills"] = ["React", "TypeScript", "GraphQL"]
        after = CandidateProfile.model_validate(candidate_record).matchable_text()
        assert text_hash(before) != text_hash(after)

    def test_profiles_are_frozen(self, candidate_record):
        profile = CandidateProfile.model_validate(candidate_record)
        with pytest.raises(ValidationError):
            profile.summary = "changed"


class TestIdentifiers:
    def test_object_id_is_stringified(self):
        oid = ObjectId()
        profile = JobProfile.model_validate({"_id": oid, "title": "React engineer"})
        assert profile.entity_id == str(oid)

    def test_extended_json_oid(self):
        profile = JobProfile.model_validate(
            {"_id": {"$oid": "64b7f0c2a1b2c3d4e5f60718"}, "title": "React engineer"}
        )
        assert profile.entity_id == "64b7f0c2a1b2c3d4e5f60718"

    def test_numeric_id(self):
        profile = JobProfile.model_validate({"id": 42, "title": "React engineer"})
        assert profile.entity_id == "42"

    def test_blank_id_falls_back(self):
        profile = JobProfile.model_validate({"id": "  ", "title": "React engineer"})
        assert profile.entity_id == "React engineer"

    def test_id_preferred_over_mongo_id(self):
        profile = JobProfile.model_validate({"id": "j1", "_id": "abc", "title": "React engineer"})
        assert profile.entity_id == "j1"


class TestJobAndClientProfiles:
    def test_job_text(self):
        profile = JobProfile(
            id="j1",
            title="React engineer",
            location="Remote",
            description="Own the frontend.",
            skills=["React", "Vite"],
        )
        assert profile.matchable_text() == "React engineer. Remote. Own the frontend.. React, Vite"

    def test_client_text(self):
        profile = ClientProfile.model_validate(
            {
                "id": "k1",
                "companyName": "Acme Bank",
                "industry": "Fintech",
                "notes": "Hiring backend engineers.",
                "city": "Paris",
                "country": "France",
            }
        )
        assert profile.matchable_text() == "Acme Bank. Fintech. Hiring backend engineers.. Paris, France"

    def test_client_description_preferred_over_notes(self):
        profile = ClientProfile(id="k1", name="Acme", description="Banking", notes="ignored")
        assert profile.matchable_text() == "Acme. Banking"

    def test_unknown_fields_ignored(self):
        profile = JobProfile.model_validate({"id": "j1", "title": "React", "salary": 100})
        assert profile.matchable_text() == "React"


class TestLoadCorpus:
    def test_records_become_entries_in_order(self):
        entries = load_corpus(
            EntityKind.JOB,
            [
                {"id": "j2", "title": "Backend engineer"},
                {"id": "j1", "title": "React engineer"},
            ],
        )
        assert [e.id for e in entries] == ["j2", "j1"]
        assert entries[0].text == "Backend engineer"
        assert entries[0].vector is None

    def test_accepts_kind_string(self):
        entries = load_corpus("clients", [{"id": "k1", "name": "Acme"}])
        assert [e.id for e in entries] == ["k1"]

    def test_skips_records_without_text(self):
        entries = load_corpus(EntityKind.JOB, [{"id": "j1"}, {"id": "j2", "title": "React"}])
        assert [e.id for e in entries] == ["j2"]

    def test_skips_invalid_records(self):
        entries = load_corpus(
            EntityKind.JOB,
            [{"id": "j1", "skills": "not-a-list"}, {"id": "j2", "title": "React"}],
        )
        assert [e.id for e in entries] == ["j2"]

    def test_first_duplicate_wins(self):
        entries = load_corpus(
            EntityKind.JOB,
            [{"id": "j1", "title": "React"}, {"id": "j1", "title": "Kafka"}],
        )
        assert len(entries) == 1
        assert entries[0].text == "React"

    def test_empty_records(self):
        assert load_corpus(EntityKind.CANDIDATE, []) == []

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            load_corpus("recruiters", [])


class TestDemoCorpus:
    def test_fixed_entries(self):
        entries = demo_corpus()
        assert [e.id for e in entries] == ["1", "2", "3"]
        assert entries[2].text == "Machine learning engineer familiar with transformers and ONNX."

    def test_returns_fresh_entries(self):
        first = demo_corpus()
        first[0].text = "changed"
        assert demo_corpus()[0].text != "changed"


class TestRankedResults:
    def test_behaves_like_list(self):
        results = RankedResults(results=["a", "b"])
        assert len(results) == 2
        assert list(results) == ["a", "b"]
        assert results[1] == "b"

    def test_unavailable(self):
        results = RankedResults.unavailable("down")
        assert results.status == ResultStatus.UNAVAILABLE
        assert results.available is False
        assert len(results) == 0

    def test_partial_coverage(self):
        coverage = [Coverage("jobs", 2, 3), Coverage("candidates", 4, 4)]
        results = RankedResults(results=["a"], coverage=coverage)
        assert results.is_partial is True
        assert coverage[0].missing == 1
