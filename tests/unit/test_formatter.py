"""Unit tests for menu label rendering."""

from swayr.models.config import FormatConfig
from swayr.services.formatter import DisplayFormatter, format_value, html_escape, subst_placeholders
from swayr.services.selection import MenuEntry


def plain(**kwargs) -> FormatConfig:
    return FormatConfig(html_escape=False, **kwargs)


class TestFormatValue:
    def test_truncated_value_is_clipped(self):
        assert format_value("{:.5}", "sway window", "…") == "sway…"

    def test_untruncated_value_is_kept(self):
        assert format_value("{:.20}", "sway", "…") == "sway"

    def test_padding(self):
        assert format_value("{:>6}", "ab") == "    ab"

    def test_invalid_format_string(self):
        assert format_value("{:Q}", "x").startswith("Invalid format string")


class TestSubstPlaceholders:
    def test_clip_syntax_in_template(self):
        values = {"title": lambda: "sway window"}
        assert subst_placeholders("<{title:{:.5}…}>", values, escape=False) == "<sway…>"

    def test_unknown_placeholder_left_verbatim(self):
        assert subst_placeholders("{foo} {id}", {"id": lambda: "7"}, escape=False) == "{foo} 7"

    def test_values_are_escaped(self):
        values = {"title": lambda: "a & <b>"}
        assert subst_placeholders("<b>{title}</b>", values, escape=True) == "<b>a &amp; &lt;b&gt;</b>"


def test_html_escape_ampersand_first():
    assert html_escape("&lt;") == "&amp;lt;"


class TestDisplayFormatter:
    def test_window_label(self, model):
        formatter = DisplayFormatter(plain(window_format="{app_name}|{title}|{marks}|{workspace_name}|{output_name}|{id}"))
        assert formatter.format_node(model, model.get(201)) == "firefox|firefox 201|[web]|2|DP-1|201"

    def test_window_without_marks(self, model):
        formatter = DisplayFormatter(plain(window_format="{title}{marks}"))
        assert formatter.format_node(model, model.get(101)) == "foot 101"

    def test_workspace_layout_name(self, model):
        formatter = DisplayFormatter(plain(workspace_format="{name} [{layout}] on {output_name}"))
        assert formatter.format_node(model, model.get(11)) == "1 [SplitH] on DP-1"

    def test_container_layout_name(self, model):
        formatter = DisplayFormatter(plain(container_format="[{layout}] {workspace_name}"))
        assert formatter.format_node(model, model.get(103)) == "[Tabbed] 1"

    def test_indent_by_depth(self, model):
        formatter = DisplayFormatter(plain(window_format="{indent}{id}", indent="--"))
        assert formatter.format_entry(model, MenuEntry(model.get(104), 2)) == "----104"

    def test_urgency_markup_only_for_urgent_windows(self, model):
        formatter = DisplayFormatter(plain(window_format="{urgency_start}{id}{urgency_end}", urgency_start="<u>", urgency_end="</u>"))
        assert formatter.format_node(model, model.get(101)) == "101"
        model.get(101).urgent = True
        assert formatter.format_node(model, model.get(101)) == "<u>101</u>"

    def test_title_escaped_but_markup_kept(self, model):
        model.get(101).name = "a<b>"
        formatter = DisplayFormatter(FormatConfig(window_format="<i>{title}</i>"))
        assert formatter.format_node(model, model.get(101)) == "<i>a&lt;b&gt;</i>"

    def test_fallback_icon(self, model, icons):
        formatter = DisplayFormatter(plain(window_format="{app_icon}", fallback_icon="/icons/default.png"), icons)
        assert formatter.format_node(model, model.get(101)) == "/icons/default.png"

    def test_missing_icon_is_empty(self, model, icons):
        formatter = DisplayFormatter(plain(window_format="img:{app_icon}:text:{id}"), icons)
        assert formatter.format_node(model, model.get(101)) == "img::text:101"

    def test_default_labels_end_with_id(self, model):
        formatter = DisplayFormatter(FormatConfig())
        for node_id in (10, 11, 103, 201):
            assert formatter.format_node(model, model.get(node_id)).endswith(f"({node_id})</span>")
