"""Tests for the window locator and element-tree flattening."""

from __future__ import annotations

from lulu_companion.accessibility.element import ElementSnapshot
from lulu_companion.accessibility.flatten import flatten_element_tree
from lulu_companion.accessibility.locator import WindowLocator, WindowSource

from tests.conftest import FakeWindowSource, lulu_window


# ── Flattening ───────────────────────────────────────────────────────────────


class TestFlatten:
    def test_preorder_traversal_order(self) -> None:
        tree = ElementSnapshot.group(
            ElementSnapshot.group(ElementSnapshot.text("a"), ElementSnapshot.text("b")),
            ElementSnapshot.text("c"),
            title="root",
        )
        assert flatten_element_tree(tree) == ["root", "a", "b", "c"]

    def test_attribute_order_within_element(self) -> None:
        node = ElementSnapshot(value="v", title="t", description="d", help="h")
        assert flatten_element_tree(node) == ["v", "t", "d", "h"]

    def test_duplicates_keep_first_position(self) -> None:
        tree = ElementSnapshot.group(
            ElementSnapshot.text("Allow"),
            ElementSnapshot.text("curl"),
            ElementSnapshot(role="AXButton", title="Allow"),
        )
        assert flatten_element_tree(tree) == ["Allow", "curl"]

    def test_whitespace_stripped_and_empty_skipped(self) -> None:
        tree = ElementSnapshot.group(
            ElementSnapshot.text("  pid:  "),
            ElementSnapshot.text("   "),
            ElementSnapshot.text(""),
            ElementSnapshot.text("\t4821\n"),
        )
        assert flatten_element_tree(tree) == ["pid:", "4821"]

    def test_empty_tree(self) -> None:
        assert flatten_element_tree(ElementSnapshot()) == []

    def test_depth_guard(self) -> None:
        leaf = ElementSnapshot.text("deep")
        tree = ElementSnapshot.group(ElementSnapshot.group(ElementSnapshot.group(leaf)))
        assert flatten_element_tree(tree, max_depth=2) == []
        assert flatten_element_tree(tree, max_depth=3) == ["deep"]

    def test_node_guard(self) -> None:
        tree = ElementSnapshot.group(*[ElementSnapshot.text(str(i)) for i in range(10)])
        # The root counts as one visited node.
        assert flatten_element_tree(tree, max_nodes=4) == ["0", "1", "2"]

    def test_lulu_window_fragments(self) -> None:
        fragments = flatten_element_tree(lulu_window())
        assert fragments[0] == "LuLu Alert"
        assert fragments[1:3] == ["pid:", "4821"]
        assert fragments[-2:] == ["Block", "Allow"]


class TestCapture:
    def test_capture_copies_subtree(self) -> None:
        window = lulu_window()
        copy = ElementSnapshot.capture(window)
        assert copy == window

    def test_capture_respects_depth(self) -> None:
        window = lulu_window()
        copy = ElementSnapshot.capture(window, max_depth=0)
        assert copy.title == "LuLu Alert"
        assert list(copy.children()) == []


# ── Locator ──────────────────────────────────────────────────────────────────


class TestWindowLocator:
    def test_finds_alert_window_among_others(self) -> None:
        prefs = ElementSnapshot(role="AXWindow", title="Preferences")
        alert = lulu_window()
        source = FakeWindowSource([prefs, alert])
        locator = WindowLocator(source)
        assert locator.find_alert_window() is alert
        assert source.calls == [("com.objective-see.lulu.app", "LuLu")]

    def test_marker_is_substring_match(self) -> None:
        window = lulu_window(title="LuLu Alert (2 pending)")
        locator = WindowLocator(FakeWindowSource([window]))
        assert locator.find_alert_window() is window

    def test_no_matching_window(self) -> None:
        locator = WindowLocator(FakeWindowSource([ElementSnapshot(role="AXWindow", title="Rules")]))
        assert locator.find_alert_window() is None

    def test_application_not_running(self) -> None:
        assert WindowLocator(FakeWindowSource()).find_alert_window() is None

    def test_untitled_window_skipped(self) -> None:
        locator = WindowLocator(FakeWindowSource([ElementSnapshot(role="AXWindow")]))
        assert locator.find_alert_window() is None

    def test_source_failure_yields_none(self) -> None:
        class BrokenSource(WindowSource):
            def windows(self, bundle_id, app_name):
                raise RuntimeError("AX API error -25204")

        assert WindowLocator(BrokenSource()).find_alert_window() is None

    def test_custom_target(self) -> None:
        source = FakeWindowSource([lulu_window(title="Firewall Prompt")])
        locator = WindowLocator(
            source, bundle_id="com.example.fw", app_name="FW", title_marker="Prompt"
        )
        assert locator.find_alert_window() is not None
        assert source.calls == [("com.example.fw", "FW")]
