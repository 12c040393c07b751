import copy
import json

import pytest

from papermap.actions.orchestrator import MindmapActions, title_from_filename
from papermap.cancellation import CancellationToken
from papermap.errors import (
    DocumentNotFoundError,
    MissingSourceTextError,
    ModelInvocationError,
    NodePathNotFoundError,
    SubtreeDepthExceededError,
)
from papermap.mindmap.paths import parse_path
from papermap.mindmap.schemas import NodeData
from papermap.persistence.dynamodb import DynamoDocumentStore

from tests.fakes import SAMPLE_TREE, FakeTransientError

PDF_TEXT = "Attention Is All You Need. " + "The dominant sequence transduction models... " * 200

METADATA_REPLY = json.dumps(
    {"title": "Attention Is All You Need", "authors": ["Vaswani", "Shazeer"], "date": "June 2017"}
)


@pytest.fixture
def actions(store, invoker, settings, prompts):
    return MindmapActions(store, invoker, settings, prompts)


@pytest.fixture
def doc_id(actions, fake_backend):
    fake_backend.add(METADATA_REPLY, json.dumps(SAMPLE_TREE))
    created = actions.ingest(PDF_TEXT, "attention.pdf")
    fake_backend.calls.clear()
    return created


def test_ingest_then_redo_tooltip_changes_only_that_node(actions, store, fake_backend, doc_id):
    listed = actions.list_documents()
    assert [d.id for d in listed] == [doc_id]
    doc = listed[0]
    assert doc.title == "Attention Is All You Need"
    assert doc.authors == ["Vaswani", "Shazeer"]
    assert doc.mindmap_data.count_leaves() == 3
    assert doc.pdf_text == PDF_TEXT

    fake_backend.add('{"tooltip": "How the model was trained."}')
    tooltip = actions.regenerate_tooltip(doc_id, parse_path(["children", 1]), NodeData(name="Training"))

    assert tooltip == "How the model was trained."
    expected = copy.deepcopy(doc.mindmap_data.to_dict())
    expected["children"][1]["tooltip"] = "How the model was trained."
    assert store.get_by_id(doc_id).mindmap_data.to_dict() == expected


def test_ingest_prompts_metadata_with_leading_text_only(actions, fake_backend):
    fake_backend.add(METADATA_REPLY, json.dumps(SAMPLE_TREE))

    actions.ingest(PDF_TEXT, "attention.pdf")

    metadata_call, tree_call = fake_backend.calls
    assert PDF_TEXT[:4000] in metadata_call["user_message"]
    assert PDF_TEXT[:4001] not in metadata_call["user_message"]
    assert PDF_TEXT in tree_call["user_message"]
    assert "research paper analyzer" in metadata_call["system_prompt"]


def test_ingest_falls_back_to_filename_for_title(actions, store, fake_backend):
    fake_backend.add('{"title": "", "authors": "Solo Author", "date": null}', json.dumps(SAMPLE_TREE))

    doc = store.get_by_id(actions.ingest(PDF_TEXT, "my-paper.final.pdf"))

    assert doc.title == "my-paper.final"
    assert doc.authors == ["Solo Author"]
    assert doc.date == ""


def test_ingest_rejects_tree_without_children(actions, store, fake_backend):
    fake_backend.add(METADATA_REPLY, '{"name": "Root", "children": []}')

    with pytest.raises(ModelInvocationError):
        actions.ingest(PDF_TEXT, "attention.pdf")

    assert store.list_all() == []


def test_remake_subtree_replaces_children_only(actions, store, fake_backend, doc_id):
    fake_backend.add(
        json.dumps(
            {
                "name": "Architecture",
                "children": [
                    {"name": "Encoder", "tooltip": "Six layers.", "section": "3.1", "pages": "3",
                     "children": [{"name": "Multi-head attention"}]},
                    {"name": "Decoder", "tooltip": "Masked.", "section": "3.1", "pages": "3"},
                ],
            }
        )
    )

    children = actions.regenerate_subtree(doc_id, parse_path(["children", 0]), NodeData(name="Architecture"))

    assert [c.name for c in children] == ["Encoder", "Decoder"]
    node = store.get_by_id(doc_id).mindmap_data.children[0]
    assert [c.name for c in node.children] == ["Encoder", "Decoder"]
    assert node.children[0].children[0].name == "Multi-head attention"
    assert node.tooltip == "Encoder-decoder stacks."
    assert '"Architecture"' in fake_backend.calls[0]["user_message"]


def test_go_deeper_sets_children_of_leaf(actions, store, fake_backend, doc_id):
    fake_backend.add('{"children": [{"name": "Query"}, {"name": "Key"}, {"name": "Value"}]}')
    path = parse_path(["children", 0, "children", 0])

    children = actions.expand_leaf(doc_id, path, NodeData(name="Self-attention"))

    assert [c.name for c in children] == ["Query", "Key", "Value"]
    leaf = store.get_by_id(doc_id).mindmap_data.children[0].children[0]
    assert [c.name for c in leaf.children] == ["Query", "Key", "Value"]
    assert leaf.tooltip == "Scaled dot product."


def test_go_deeper_with_no_children_in_reply_clears_children(actions, store, fake_backend, doc_id):
    fake_backend.add('{"something": "else"}')

    assert actions.expand_leaf(doc_id, parse_path(["children", 0]), NodeData(name="Architecture")) == []
    assert store.get_by_id(doc_id).mindmap_data.children[0].children == []


def test_unknown_document(actions):
    with pytest.raises(DocumentNotFoundError):
        actions.regenerate_tooltip("nope", parse_path(["children", 0]), NodeData(name="x"))


@pytest.mark.parametrize("raw_path", [[], ["children", 9], ["children", 0, "name"]])
def test_unresolvable_path_makes_no_model_call_and_no_write(actions, store, fake_backend, doc_id, raw_path):
    before = store.get_by_id(doc_id)

    with pytest.raises(NodePathNotFoundError):
        actions.regenerate_tooltip(doc_id, parse_path(raw_path), NodeData(name="x"))

    assert fake_backend.calls == []
    assert store.get_by_id(doc_id) == before


def test_missing_source_text_is_a_server_fault(actions, store):
    store.create({"id": "no-text", "title": "T", "mindmapData": SAMPLE_TREE})

    with pytest.raises(MissingSourceTextError):
        actions.expand_leaf("no-text", parse_path(["children", 0]), NodeData(name="x"))


def test_failed_model_call_writes_nothing(actions, store, fake_backend, doc_id):
    before = store.get_by_id(doc_id)
    fake_backend.add(*(FakeTransientError("throttled") for _ in range(3)))

    with pytest.raises(ModelInvocationError):
        actions.regenerate_tooltip(doc_id, parse_path(["children", 1]), NodeData(name="Training"))

    assert store.get_by_id(doc_id) == before


def test_empty_tooltip_reply_is_a_model_failure(actions, fake_backend, doc_id):
    fake_backend.add('{"tooltip": ""}')

    with pytest.raises(ModelInvocationError):
        actions.regenerate_tooltip(doc_id, parse_path(["children", 1]), NodeData(name="Training"))


def test_cancelled_request_makes_no_calls(actions, fake_backend, doc_id):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(InterruptedError):
        actions.regenerate_tooltip(
            doc_id, parse_path(["children", 1]), NodeData(name="Training"), cancellation=token
        )
    assert fake_backend.calls == []


def test_depth_limit_is_off_by_default(actions, fake_backend, doc_id):
    fake_backend.add('{"children": [{"name": "Deep"}]}')
    path = parse_path(["children", 0, "children", 0])

    assert actions.regenerate_subtree(doc_id, path, NodeData(name="Self-attention"))[0].name == "Deep"


def test_depth_limit_rejects_deep_paths(store, invoker, settings, prompts, fake_backend, doc_id):
    limited = MindmapActions(store, invoker, settings.model_copy(update={"max_subtree_depth": 2}), prompts)

    with pytest.raises(SubtreeDepthExceededError):
        limited.regenerate_subtree(doc_id, parse_path(["children", 0, "children", 0]), NodeData(name="x"))
    assert fake_backend.calls == []

    fake_backend.add('{"children": []}')
    limited.regenerate_subtree(doc_id, parse_path(["children", 0]), NodeData(name="Architecture"))


def test_document_deleted_between_read_and_write(dynamo_table, invoker, settings, prompts, fake_backend):
    store = DynamoDocumentStore(dynamo_table)
    actions = MindmapActions(store, invoker, settings, prompts)
    fake_backend.add(METADATA_REPLY, json.dumps(SAMPLE_TREE))
    doc_id = actions.ingest(PDF_TEXT, "attention.pdf")


    original_execute = fake_backend.execute_sync

    def execute_then_delete(*args, **kwargs):
        result = original_execute(*args, **kwargs)
        dynamo_table.items.pop(doc_id)
        return result

    fake_backend.execute_sync = execute_then_delete
    fake_backend.add('{"tooltip": "late"}')

    with pytest.raises(DocumentNotFoundError):
        actions.regenerate_tooltip(doc_id, parse_path(["children", 0]), NodeData(name="Architecture"))
    assert doc_id not in dynamo_table.items


def test_title_from_filename():
    assert title_from_filename("paper.pdf") == "paper"
    assert title_from_filename("notes") == "notes"


@pytest.mark.parametrize("title", [["Attention"], {"text": "Attention"}, True])
def test_unusable_title_falls_back_to_filename(actions, store, fake_backend, title):
    reply = {"title": title, "authors": ["Vaswani"], "date": {"year": 2017}}
    fake_backend.add(json.dumps(reply), json.dumps(SAMPLE_TREE))

    doc = store.get_by_id(actions.ingest(PDF_TEXT, "paper.pdf"))

    assert doc.title == "paper"
    assert doc.date == ""


def test_node_actions_work_on_trees_with_drifted_nodes(store, invoker, settings, prompts, fake_backend):
    drifted = copy.deepcopy(SAMPLE_TREE)
    drifted["children"][0]["children"][0]["pages"] = [3, 4]
    drifted["children"][1]["children"] = {"legacy": "map"}
    store.create({"id": "drifted", "title": "T", "pdfText": PDF_TEXT, "mindmapData": drifted})
    actions = MindmapActions(store, invoker, settings, prompts)
    fake_backend.add('{"tooltip": "Fresh."}')

    actions.regenerate_tooltip("drifted", parse_path(["children", 0, "children", 0]), NodeData(name="Self-attention"))

    node = store.get_by_id("drifted").mindmap_data.children[0].children[0]
    assert node.tooltip == "Fresh."
    assert node.pages == "3, 4"
