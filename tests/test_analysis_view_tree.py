from api.services.analysis_pdf.view_tree import (
    ViewNode,
    clone_tree,
    expand_tree,
    image_sources,
    is_share_control,
    strip_share_controls,
)


def _tree():
    return ViewNode.from_dict(
        {
            "tag": "section",
            "children": [
                {"tag": "h2", "text": "Tarot"},
                {"tag": "div", "text": "Hidden card", "style": {"display": "none"}},
                {"tag": "p", "text": "Clamped", "attrs": {"class": "text-sm line-clamp-3"}, "style": {"max-height": "80px"}},
                {"tag": "details", "children": [{"tag": "p", "text": "More"}]},
                {"tag": "div", "attrs": {"data-state": "closed", "aria-expanded": "false", "hidden": ""}},
                {"tag": "div", "attrs": {"class": "share-actions"}, "children": [{"tag": "button", "text": "Share"}]},
                {"tag": "button", "attrs": {"aria-label": "Share analysis"}},
                {"tag": "img", "src": "https://cdn.example.com/card.png"},
            ],
        }
    )


def test_from_dict_normalizes_tags_and_defaults():
    node = ViewNode.from_dict({"tag": "DIV", "style": {"Color": "red"}, "children": ["junk", {"text": "x"}]})
    assert node.tag == "div"
    assert node.style == {"color": "red"}
    assert len(node.children) == 1
    assert node.children[0].tag == "div"


def test_expand_removes_hiding_rules():
    root = _tree()
    edits = expand_tree(root)
    assert edits == 7
    hidden, clamped, details, toggle = root.children[1:5]
    assert "display" not in hidden.style
    assert "max-height" not in clamped.style
    assert clamped.classes == ["text-sm"]
    assert details.attrs["open"] == "open"
    assert toggle.attrs == {"data-state": "open", "aria-expanded": "true"}


def test_strip_share_controls():
    root = _tree()
    assert strip_share_controls(root) == 2
    assert not any(is_share_control(node) for node in root.walk())
    assert [c.tag for c in root.children][-1] == "img"


def test_clone_leaves_original_untouched():
    original = _tree()
    clone = clone_tree(original)
    expand_tree(clone)
    strip_share_controls(clone)
    assert original.children[1].style == {"display": "none"}
    assert len(original.children) == 8


def test_image_sources():
    assert image_sources(_tree()) == ["https://cdn.example.com/card.png"]


def test_pdf_exclude_marker_is_a_share_control():
    assert is_share_control(ViewNode(attrs={"data-pdf-exclude": "true"}))
    assert is_share_control(ViewNode(attrs={"data-share-controls": ""}))
    assert not is_share_control(ViewNode(tag="button", attrs={"aria-label": "Close"}))
