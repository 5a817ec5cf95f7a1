import re

from rapidfuzz import fuzz
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pathlab.config import settings
from pathlab.models.catalog import TestDefinition


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def visible_tests(db: Session, lab_id: int | None):
    query = db.query(TestDefinition).filter(TestDefinition.is_active.is_(True))
    if lab_id is None:
        return query.filter(TestDefinition.lab_id.is_(None))
    return query.filter(or_(TestDefinition.lab_id.is_(None), TestDefinition.lab_id == lab_id))


def search_tests(
    db: Session,
    lab_id: int | None,
    search: str | None = None,
    category: str | None = None,
    threshold: int | None = None,
) -> list[TestDefinition]:
    """Substring hits first, then fuzzy hits scored by partial ratio."""
    query = visible_tests(db, lab_id)
    if category:
        query = query.filter(TestDefinition.category.ilike(category))
    tests = query.order_by(TestDefinition.category, TestDefinition.name).all()
    if not search or not _normalize(search):
        return tests

    score_threshold = threshold if threshold is not None else settings.catalog_fuzzy_threshold
    needle = _normalize(search)
    exact: list[TestDefinition] = []
    fuzzy: list[tuple[float, TestDefinition]] = []
    for test in tests:
        name = _normalize(test.name)
        if needle in name:
            exact.append(test)
            continue
        score = fuzz.partial_ratio(needle, name)
        if score >= score_threshold:
            fuzzy.append((score, test))

    fuzzy.sort(key=lambda item: (-item[0], item[1].name))
    return exact + [test for _, test in fuzzy]


def list_categories(db: Session, lab_id: int | None) -> list[str]:
    rows = visible_tests(db, lab_id).with_entities(TestDefinition.category).distinct().all()
    return sorted(row[0] for row in rows)


def get_tests_by_ids(db: Session, lab_id: int | None, test_ids: list[int]) -> dict[int, TestDefinition]:
    if not test_ids:
        return {}
    rows = visible_tests(db, lab_id).filter(TestDefinition.id.in_(test_ids)).all()
    return {row.id: row for row in rows}
