from datetime import date

from tr4ck.backend import state
from tr4ck.backend.forms import (
    Document,
    Entry,
    Profile,
    Project,
    default_document,
    from_dict,
    normalize_document,
    to_dict,
    validate,
)


def test_from_dict_coerces_and_defaults():
    doc = from_dict(
        {
            "profile": {"name": "Ana", "rate": "70"},
            "projects": [
                {"id": "p1", "name": "Atlas", "entries": [{"id": "e1", "date": "2024-01-05", "hours": "4.5"}]},
                {"id": "p2", "name": "Beacon", "rate": 90, "archived": 1, "entries": "oops"},
            ],
        }
    )
    assert doc.profile == Profile(name="Ana", rate=70.0)
    assert doc.projects[0].rate is None
    assert doc.projects[0].archived is False
    assert doc.projects[0].entries == (Entry(id="e1", date="2024-01-05", hours=4.5),)
    assert doc.projects[1].archived is True
    assert doc.projects[1].entries == ()


def test_entries_without_id_get_one():
    doc = from_dict(
        {"profile": {"rate": 1}, "projects": [{"id": "p", "entries": [{"date": "2024-01-01", "hours": 1}]}]}
    )
    assert doc.projects[0].entries[0].id.startswith("entry_")


def test_to_dict_omits_unset_rate():
    doc = Document(
        profile=Profile(name="", rate=85),
        projects=(Project(id="p1", name="Atlas"), Project(id="p2", name="B", rate=40)),
    )
    data = to_dict(doc)
    assert "rate" not in data["projects"][0]
    assert data["projects"][1]["rate"] == 40
    assert from_dict(data) == doc


def test_normalize_falls_back_to_default():
    today = date(2024, 1, 5)
    for bad in (None, [], "x", {"profile": {}}, {"profile": {"rate": 1}, "projects": {}}):
        doc = normalize_document(bad, today)
        assert doc.projects[0].name == "Atlas redesign"
        assert doc.projects[0].entries[0].date == "2024-01-05"


def test_default_document_shape():
    doc = default_document(date(2024, 3, 1))
    assert doc.profile.rate == 85
    assert len(doc.projects) == 1
    assert doc.projects[0].entries[0].hours == 4.5
    assert validate(doc) == []


def test_validate_reports_duplicates_and_bad_dates():
    doc = Document(
        projects=(
            Project(id="p", name="A", entries=(Entry("e", "2024-01-01", 1), Entry("e", "nope", 1))),
            Project(id="p", name="B"),
        )
    )
    problems = validate(doc)
    assert any("Duplicate project id" in p for p in problems)
    assert any("Duplicate entry id" in p for p in problems)
    assert any("invalid date" in p for p in problems)


def test_normalize_replaces_duplicate_ids():
    raw = {
        "profile": {"name": "", "rate": 85},
        "projects": [
            {"id": "p1", "name": "Atlas", "entries": [{"id": "e1", "date": "2024-01-05", "hours": 2}]},
            {
                "id": "p1",
                "name": "Beacon",
                "entries": [
                    {"id": "e1", "date": "2024-01-06", "hours": 1},
                    {"id": "e1", "date": "2024-01-07", "hours": 3},
                ],
            },
        ],
    }
    doc = normalize_document(raw, date(2024, 1, 5))
    assert validate(doc) == []
    assert doc.projects[0].id == "p1"
    assert doc.projects[0].entries[0].id == "e1"
    assert doc.projects[1].id.startswith("proj_")
    assert [e.hours for e in doc.projects[1].entries] == [1, 3]

    remaining = state.delete_project(doc, "p1")
    assert [p.name for p in remaining.projects] == ["Beacon"]
