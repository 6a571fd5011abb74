from copy import deepcopy

from gamedocs import DEFAULT_PROTECTED_PATHS, find_protected_writes, merge_documents


def _existing() -> dict:
    return {
        "_id": "abcdEFGH12345678",
        "name": "Bilbo",
        "type": "character",
        "system": {"attributes": {"hp": {"value": 10, "max": 10}}, "tags": ["small"]},
        "_stats": {
            "createdTime": 1000,
            "modifiedTime": 1000,
            "coreVersion": "12.331",
            "systemId": "dnd5e",
            "systemVersion": "4.0.0",
            "lastModifiedBy": "gm",
        },
    }


def test_nested_objects_merge_and_scalars_replace() -> None:
    merged = merge_documents(
        _existing(),
        {"name": "Bilbo Baggins", "system": {"attributes": {"hp": {"value": 4}}}},
    )

    assert merged["name"] == "Bilbo Baggins"
    assert merged["system"]["attributes"]["hp"] == {"value": 4, "max": 10}
    assert merged["system"]["tags"] == ["small"]


def test_arrays_are_replaced_wholesale() -> None:
    merged = merge_documents(_existing(), {"system": {"tags": ["brave"]}})

    assert merged["system"]["tags"] == ["brave"]


def test_protected_paths_are_never_overwritten() -> None:
    existing = _existing()

    merged = merge_documents(
        existing,
        {
            "_id": "ZZZZZZZZZZZZZZZZ",
            "_stats": {"createdTime": 1, "systemId": "pf2e", "modifiedTime": 2000},
        },
    )

    assert merged["_id"] == existing["_id"]
    assert merged["_stats"]["createdTime"] == 1000
    assert merged["_stats"]["systemId"] == "dnd5e"
    assert merged["_stats"]["modifiedTime"] == 2000


def test_protected_children_survive_when_parent_is_not_an_object() -> None:
    existing = _existing()
    existing["_stats"] = None

    merged = merge_documents(existing, {"_stats": {"createdTime": 5, "lastModifiedBy": "x"}})

    assert merged["_stats"] == {"lastModifiedBy": "x"}


def test_merge_is_copy_on_write() -> None:
    existing = _existing()
    snapshot = deepcopy(existing)
    update = {"system": {"attributes": {"hp": {"value": 1}}}, "flags": {"core": {"a": 1}}}
    update_snapshot = deepcopy(update)

    merged = merge_documents(existing, update)
    merged["flags"]["core"]["a"] = 99
    merged["system"]["tags"].append("mutated")

    assert existing == snapshot
    assert update == update_snapshot
    assert merged is not existing


def test_custom_protected_paths() -> None:
    merged = merge_documents(_existing(), {"name": "Other", "type": "npc"}, {"name"})

    assert merged["name"] == "Bilbo"
    assert merged["type"] == "npc"


def test_find_protected_writes_lists_dotted_paths() -> None:
    update = {"_id": "x", "name": "y", "_stats": {"coreVersion": "13", "modifiedTime": 1}}

    assert sorted(find_protected_writes(update)) == ["_id", "_stats.coreVersion"]
    assert find_protected_writes({"name": "only"}, DEFAULT_PROTECTED_PATHS) == []


def test_non_object_parent_keeps_protected_children() -> None:
    protected_stats = {
        "createdTime": 1000,
        "coreVersion": "12.331",
        "systemId": "dnd5e",
        "systemVersion": "4.0.0",
    }

    for replacement in (None, "x", []):
        merged = merge_documents(_existing(), {"_stats": replacement})

        assert merged["_stats"] == protected_stats


def test_nested_protected_child_survives_scalar_parent() -> None:
    existing = {"system": {"details": {"origin": "Shire", "age": 50}}}

    merged = merge_documents(existing, {"system": {"details": 0}}, {"system.details.origin"})

    assert merged == {"system": {"details": {"origin": "Shire"}}}


def test_non_object_parent_reports_dropped_children() -> None:
    assert find_protected_writes({"_stats": None}) == [
        "_stats.coreVersion",
        "_stats.createdTime",
        "_stats.systemId",
        "_stats.systemVersion",
    ]
    assert find_protected_writes({"system": "x"}) == []
