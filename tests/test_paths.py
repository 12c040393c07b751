import pytest

from papermap.errors import InvalidInputError
from papermap.mindmap.paths import (
    FieldSegment,
    IndexSegment,
    format_path,
    get_node,
    node_depth,
    parse_path,
    update_node,
)
from papermap.mindmap.schemas import MindmapNode


@pytest.fixture
def tree(sample_tree):
    return MindmapNode.model_validate(sample_tree)


def test_parse_path_types_segments():
    path = parse_path(["children", 1, "children", 0.0])
    assert path == (
        FieldSegment("children"),
        IndexSegment(1),
        FieldSegment("children"),
        IndexSegment(0),
    )
    assert format_path(path) == ["children", 1, "children", 0]


def test_parse_path_truncates_fractional_indices():
    assert parse_path([1.9]) == (IndexSegment(1),)


@pytest.mark.parametrize("raw", ["children", None, {"a": 1}])
def test_parse_path_requires_list(raw):
    with pytest.raises(InvalidInputError):
        parse_path(raw)


@pytest.mark.parametrize("segment", [True, None, {"x": 1}, float("nan"), [0]])
def test_parse_path_rejects_bad_segments(segment):
    with pytest.raises(InvalidInputError):
        parse_path(["children", segment])


def test_node_depth_counts_index_segments():
    assert node_depth(parse_path([])) == 0
    assert node_depth(parse_path(["children", 0])) == 1
    assert node_depth(parse_path(["children", 0, "children", 1])) == 2


def test_get_node_resolves_nested_child(tree):
    node = get_node(tree, parse_path(["children", 0, "children", 1]))
    assert isinstance(node, MindmapNode)
    assert node.name == "Positional encoding"


@pytest.mark.parametrize(
    "raw",
    [
        [],
        ["children", 5],
        ["children", -1],
        ["kids", 0],
        ["children", 1, "children", 0],
        ["children", 0, "name", 0],
    ],
)
def test_get_node_unresolvable_returns_none(tree, raw):
    assert get_node(tree, parse_path(raw)) is None


def test_update_merges_patch_into_node(tree):
    assert update_node(tree, parse_path(["children", 1]), {"tooltip": "New"})

    training = tree.children[1]
    assert training.tooltip == "New"
    assert training.name == "Training"
    assert training.section == "5 Training"
    assert training.pages == "7"
    # siblings untouched
    assert tree.children[0].tooltip == "Encoder-decoder stacks."


def test_update_replaces_children(tree):
    new_children = [{"name": "Optimizer", "tooltip": "Adam.", "section": "5.3", "pages": "7"}]
    assert update_node(tree, parse_path(["children", 0]), {"children": new_children})

    architecture = tree.children[0]
    assert [c.name for c in architecture.children] == ["Optimizer"]
    assert isinstance(architecture.children[0], MindmapNode)
    assert architecture.tooltip == "Encoder-decoder stacks."


def test_update_unresolvable_path_leaves_tree_unchanged(tree, sample_tree):
    before = tree.to_dict()
    assert not update_node(tree, parse_path(["children", 7]), {"tooltip": "x"})
    assert not update_node(tree, parse_path(["children", 1, "children", 0]), {"tooltip": "x"})
    assert not update_node(tree, parse_path([]), {"tooltip": "x"})
    assert tree.to_dict() == before


def test_update_replaces_scalar_field(tree):
    assert update_node(tree, parse_path(["children", 0, "pages"]), "2-6")
    assert tree.children[0].pages == "2-6"


def test_update_adds_absent_field_on_node(tree):
    assert update_node(tree, parse_path(["children", 0, "color"]), "red")
    assert tree.children[0].to_dict()["color"] == "red"


def test_update_works_on_plain_dicts(sample_tree):
    assert update_node(sample_tree, parse_path(["children", 0, "children", 0]), {"pages": "4"})
    assert sample_tree["children"][0]["children"][0] == {
        "name": "Self-attention",
        "tooltip": "Scaled dot product.",
        "section": "3.2",
        "pages": "4",
    }


def test_update_rejects_patch_that_breaks_schema(tree):
    before = tree.to_dict()
    with pytest.raises(InvalidInputError):
        update_node(tree, parse_path(["children", 0]), {"tooltip": {"not", "text"}})
    assert tree.to_dict() == before
