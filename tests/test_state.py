import pytest
from docktop.state import ResourceStore
from docktop.model import ResourceKind, FilterMode


def ids(store):
    return [r.id for r in store.visible()]


def test_state_selection(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container(str(i)) for i in range(1, 6)])

    # Default index 0
    assert store.cursor == 0

    store.select(1)
    assert store.cursor == 1

    # Move past end (clamping)
    store.select(100)
    assert store.cursor == 4

    # Move up past 0 (clamping)
    store.select(-100)
    assert store.cursor == 0


def test_empty_store_has_no_cursor():
    store = ResourceStore()
    assert store.cursor is None
    assert store.selected() is None
    store.select(1)
    assert store.cursor is None


def test_visible_list_is_ordered_by_identifier(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("c"), records.container("a"),
                                                   records.container("b")])
    assert ids(store) == ["a", "b", "c"]


def test_running_only_then_show_all_keeps_selection(records):
    store = ResourceStore(filter_mode=FilterMode.RUNNING_ONLY)
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("A", "running"),
                                                   records.container("B", "exited")])
    assert ids(store) == ["A"]
    assert store.cursor == 0

    assert store.toggle_filter() is FilterMode.SHOW_ALL
    assert ids(store) == ["A", "B"]
    assert store.selected_id() == "A"


def test_double_toggle_restores_ordering_and_selection(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [
        records.container("a", "running"),
        records.container("b", "exited"),
        records.container("c", "running"),
    ])
    store.select(2)
    before = (ids(store), store.selected_id())

    store.toggle_filter()
    assert ids(store) == ["a", "c"]
    assert store.selected_id() == "c"

    store.toggle_filter()
    assert (ids(store), store.selected_id()) == before


def test_toggle_hiding_selection_clamps(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a", "exited"),
                                                   records.container("b", "exited")])
    store.select(1)
    store.toggle_filter()
    assert store.visible() == []
    assert store.cursor is None


def test_running_only_ignores_other_kinds(records):
    store = ResourceStore(kind=ResourceKind.IMAGES, filter_mode=FilterMode.RUNNING_ONLY)
    store.merge_snapshot(ResourceKind.IMAGES, [records.image("sha256:1"), records.image("sha256:2", tags=[])])
    assert len(store.visible()) == 2


def test_merge_snapshot_preserves_selection_by_identifier(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("b"), records.container("c")])
    store.select(1)
    assert store.selected_id() == "c"

    # A new container sorts before the selection
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("b"),
                                                   records.container("c")])
    assert store.selected_id() == "c"
    assert store.cursor == 2


def test_merge_snapshot_resets_cursor_when_selection_disappears(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("b")])
    store.select(1)
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("c")])
    assert store.cursor == 0

    store.merge_snapshot(ResourceKind.CONTAINERS, [])
    assert store.cursor is None


def test_merge_snapshot_keeps_fetched_details(records):
    store = ResourceStore()
    store.merge_single(records.container("a", details={"Env": "X=1"}))
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a")])
    assert store.get(ResourceKind.CONTAINERS, "a").details == {"Env": "X=1"}


def test_merge_snapshot_drops_details_when_status_changed(records):
    store = ResourceStore()
    store.merge_single(records.container("a", "running", details={"State": "running"}))
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a", "exited")])
    record = store.get(ResourceKind.CONTAINERS, "a")
    assert record.status == "exited"
    assert record.details == {}


def test_merge_single_leaves_other_records_untouched(records):
    store = ResourceStore()
    a, b = records.container("a"), records.container("b")
    store.merge_snapshot(ResourceKind.CONTAINERS, [a, b])
    store.select(1)

    store.merge_single(records.container("a", "exited"))
    assert store.get(ResourceKind.CONTAINERS, "a").status == "exited"
    assert store.get(ResourceKind.CONTAINERS, "b") is b
    assert store.selected_id() == "b"


def test_merge_of_inactive_kind_does_not_move_cursor(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("b")])
    store.select(1)
    store.merge_snapshot(ResourceKind.VOLUMES, [records.volume("data")])
    assert store.cursor == 1
    assert ids(store) == ["a", "b"]


def test_mark_removed_clamps_cursor(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("b")])
    store.select(1)

    assert store.mark_removed(ResourceKind.CONTAINERS, "b") is True
    assert store.cursor == 0
    assert store.mark_removed(ResourceKind.CONTAINERS, "b") is False


def test_set_kind_resets_cursor_and_message(records):
    store = ResourceStore()
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a"), records.container("b")])
    store.merge_snapshot(ResourceKind.NETWORKS, [records.network("n1"), records.network("n2")])
    store.select(1)
    store.set_message("hello")

    store.set_kind(ResourceKind.NETWORKS)
    assert store.kind is ResourceKind.NETWORKS
    assert store.cursor == 0
    assert store.message == ""

    store.set_kind(ResourceKind.VOLUMES)
    assert store.cursor is None


def test_version_increments_on_mutation(records):
    store = ResourceStore()
    v0 = store.version
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a")])
    assert store.version > v0

    v1 = store.version
    store.select(5)  # already at the only row
    assert store.version == v1

    store.set_message("x")
    assert store.version == v1 + 1


@pytest.mark.parametrize("mode", [FilterMode.SHOW_ALL, FilterMode.RUNNING_ONLY])
def test_snapshot_reflects_store(records, mode):
    store = ResourceStore(filter_mode=mode)
    store.merge_snapshot(ResourceKind.CONTAINERS, [records.container("a", "running")])
    snap = store.snapshot()
    assert snap.kind is ResourceKind.CONTAINERS
    assert [r.id for r in snap.records] == ["a"]
    assert snap.cursor == 0
    assert snap.filter_mode is mode
    assert snap.version == store.version
