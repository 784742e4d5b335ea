from tr4ck.backend import state
from tr4ck.backend.forms import Document, Entry, Profile, Project


def _doc() -> Document:
    return Document(
        profile=Profile(name="", rate=85),
        projects=(
            Project(
                id="p1",
                name="Atlas",
                rate=85,
                entries=(
                    Entry(id="e1", date="2024-01-05", hours=4.5),
                    Entry(id="e2", date="2024-01-06", hours=2),
                ),
            ),
            Project(id="p2", name="Beacon", entries=(Entry(id="e3", date="2024-01-05", hours=1),)),
        ),
    )


def test_transitions_do_not_mutate_input():
    doc = _doc()
    new = state.rename_project(doc, "p1", "Atlas v2")
    assert doc.projects[0].name == "Atlas"
    assert new.projects[0].name == "Atlas v2"
    assert new.projects[1] is doc.projects[1]


def test_delete_project_cascades_only_that_project():
    doc = _doc()
    new = state.delete_project(doc, "p1")
    assert [p.id for p in new.projects] == ["p2"]
    assert new.projects[0].entries == doc.projects[1].entries


def test_add_project_defaults():
    doc, project = state.add_project(_doc())
    assert project.name == "Untitled project"
    assert project.rate is None
    assert not project.archived
    assert doc.projects[-1] == project
    assert len({p.id for p in doc.projects}) == 3


def test_set_profile_and_rate():
    doc = state.set_profile(_doc(), name="Ana", rate="100")
    assert doc.profile == Profile(name="Ana", rate=100.0)
    doc = state.set_project_rate(doc, "p1", 120)
    assert doc.projects[0].rate == 120
    doc = state.set_project_rate(doc, "p1", None)
    assert doc.projects[0].rate is None


def test_archive_and_restore():
    doc = state.archive_project(_doc(), "p2")
    assert [p.id for p in doc.active_projects] == ["p1"]
    doc = state.restore_project(doc, "p2")
    assert doc.projects[1].archived is False


def test_entry_crud():
    doc, entry = state.add_entry(_doc(), "p2", "2024-01-08", 3)
    assert entry is not None
    assert doc.projects[1].entries[-1] == entry
    doc = state.update_entry(doc, "p2", entry.id, hours=0)
    assert doc.projects[1].entries[-1].hours == 0
    doc = state.update_entry(doc, "p2", entry.id, date="2024-01-09")
    assert doc.projects[1].entries[-1].date == "2024-01-09"
    doc = state.delete_entry(doc, "p2", entry.id)
    assert [e.id for e in doc.projects[1].entries] == ["e3"]


def test_add_entry_unknown_project_is_noop():
    doc = _doc()
    new, entry = state.add_entry(doc, "missing")
    assert entry is None
    assert new is doc


def test_set_hours_for_date_zero_deletes_then_creates_one():
    doc = state.set_hours_for_date(_doc(), "p1", "2024-01-05", 0)
    assert [e.id for e in doc.projects[0].entries] == ["e2"]
    doc = state.set_hours_for_date(doc, "p1", "2024-01-05", 3)
    matches = [e for e in doc.projects[0].entries if e.date == "2024-01-05"]
    assert len(matches) == 1
    assert matches[0].hours == 3


def test_set_hours_for_date_updates_existing_and_ignores_other_projects():
    doc = state.set_hours_for_date(_doc(), "p1", "2024-01-06", 7.25)
    assert doc.projects[0].entries[1] == Entry(id="e2", date="2024-01-06", hours=7.25)
    assert doc.projects[1] == _doc().projects[1]


def test_set_hours_for_date_non_numeric_deletes_or_skips():
    doc = state.set_hours_for_date(_doc(), "p1", "2024-01-06", "abc")
    assert [e.id for e in doc.projects[0].entries] == ["e1"]
    doc = state.set_hours_for_date(doc, "p1", "2024-03-01", -2)
    assert len(doc.projects[0].entries) == 1
