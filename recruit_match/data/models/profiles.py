"""
Candidate, job and client profiles.

Each profile knows how to derive its matchable text. The text is a pure
function of the profile fields, so any edit to a matchable field changes
the text and therefore its hash in the vector cache.
"""

from typing import Any, Optional

from pydantic import Field, ValidationError

from recruit_match.utils.constants import DEMO_CORPUS, EntityKind
from recruit_match.utils.logger import get_logger

from .base import EntityProfile, join_list, join_text
from .corpus import CorpusEntry

logger = get_logger(__name__)


class CandidateProfile(EntityProfile):
    """Matchable view of a candidate."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    current_job_title: Optional[str] = None
    title: Optional[str] = None
    primary_skills: list[str] = Field(default_factory=list)
    secondary_skills: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    current_location: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Candidate name as shown in results."""
        if self.full_name:
            return self.full_name
        if self.name:
            return self.name
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def all_skills(self) -> list[str]:
        """Skills in declaration order with duplicates removed."""
        seen: dict[str, None] = {}
        for skill in self.primary_skills + self.secondary_skills + self.skills:
            if skill and skill.strip():
                seen.setdefault(skill.strip(), None)
        return list(seen)

    def fallback_id(self) -> Optional[str]:
        return self.email or self.display_name or None

    def matchable_text(self) -> str:
        return join_text(
            self.display_name,
            self.current_job_title or self.title,
            join_list(self.all_skills),
            self.summary,
            self.current_location,
        )


class JobProfile(EntityProfile):
    """Matchable view of a job posting."""

    title: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    skills: list[str] = Field(default_factory=list)

    def fallback_id(self) -> Optional[str]:
        return self.title

    def matchable_text(self) -> str:
        return join_text(
            self.title,
            self.location,
            self.description,
            join_list(self.skills),
        )


class ClientProfile(EntityProfile):
    """Matchable view of a client company."""

    company_name: Optional[str] = None
    name: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.company_name or self.name or ""

    def fallback_id(self) -> Optional[str]:
        return self.display_name or None

    def matchable_text(self) -> str:
        location = ", ".join(p for p in (self.city, self.country) if p)
        return join_text(
            self.display_name,
            self.industry,
            self.description or self.notes,
            location,
        )


PROFILE_TYPES: dict[EntityKind, type[EntityProfile]] = {
    EntityKind.CANDIDATE: CandidateProfile,
    EntityKind.JOB: JobProfile,
    EntityKind.CLIENT: ClientProfile,
}


def to_corpus_entry(profile: EntityProfile) -> Optional[CorpusEntry]:
    """Convert a profile to a corpus entry, or None if it has no id or text."""
    entry_id = profile.entity_id
    text = profile.matchable_text()
    if not entry_id or not text:
        return None
    return CorpusEntry(id=entry_id, text=text)


def load_corpus(kind: EntityKind | str, records: list[dict[str, Any]]) -> list[CorpusEntry]:
    """
    Convert raw entity records into corpus entries.

    Records that fail validation or have no id/text are skipped with a
    warning. When two records resolve to the same id the first one wins.

    Args:
        kind: Entity kind of every record.
        records: Raw records as returned by the data services.

    Returns:
        Corpus entries in input order.
    """
    profile_type = PROFILE_TYPES[EntityKind(kind)]
    entries: list[CorpusEntry] = []
    seen: set[str] = set()

    for index, record in enumerate(records):
        try:
            profile = profile_type.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Skipping invalid {EntityKind(kind).value} record #{index}: {e}")
            continue

        entry = to_corpus_entry(profile)
        if entry is None:
            logger.warning(f"Skipping {EntityKind(kind).value} record #{index}: no id or matchable text")
            continue
        if entry.id in seen:
            logger.warning(f"Skipping duplicate {EntityKind(kind).value} id: {entry.id}")
            continue

        seen.add(entry.id)
        entries.append(entry)

    return entries


def demo_corpus() -> list[CorpusEntry]:
    """The fixed demo corpus."""
    return [CorpusEntry(id=entry_id, text=text) for entry_id, text in DEMO_CORPUS]
