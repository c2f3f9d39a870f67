from conftest import make_event

from searchnos_indexer.models.kinds import Kind
from searchnos_indexer.services.document_mapper import build_document, convert_tags, extract_text


def test_extract_text_text_note_is_verbatim():
    ev = make_event(kind=Kind.TEXT_NOTE, content='  {"not": "parsed"}  ')
    assert extract_text(ev) == '  {"not": "parsed"}  '


def test_extract_text_long_form_is_verbatim():
    ev = make_event(kind=Kind.LONG_FORM_TEXT_NOTE, content="# Title\n\nbody")
    assert extract_text(ev) == "# Title\n\nbody"


def test_extract_text_metadata_joins_values():
    ev = make_event(kind=Kind.METADATA, content='{"name":"alice","about":"bio"}')
    assert extract_text(ev) == "alice bio"


def test_extract_text_malformed_metadata_is_empty():
    assert extract_text(make_event(kind=Kind.METADATA, content="{not json")) == ""
    assert extract_text(make_event(kind=Kind.METADATA, content='["a", "b"]')) == ""
    assert extract_text(make_event(kind=Kind.METADATA, content='{"name": 1}')) == ""


def test_convert_tags():
    tags = [["e", "abc"], ["e", "abc"], ["encoding", "x"]]
    assert convert_tags(tags) == {"e": {"abc"}}


def test_convert_tags_keeps_first_value_only_and_skips_short_tags():
    tags = [["p", "k1", "wss://relay"], ["t"], [], ["t", "nostr"], ["t", "python"]]
    assert convert_tags(tags) == {"p": {"k1"}, "t": {"nostr", "python"}}


def test_build_document_source_shape():
    ev = make_event(kind=Kind.TEXT_NOTE, content="hi", tags=[["t", "b"], ["t", "a"]])

    doc = build_document(ev)
    src = doc.to_source()

    assert doc.doc_id == ev.id
    assert src["text"] == "hi"
    assert src["tags"] == {"t": ["a", "b"]}
    assert src["event"] == {
        "id": ev.id,
        "pubkey": ev.pubkey,
        "created_at": ev.created_at,
        "kind": 1,
        "content": "hi",
        "tags": [["t", "b"], ["t", "a"]],
        "sig": ev.sig,
    }


def test_extract_text_deeply_nested_metadata_is_empty():
    nested = "[" * 100000 + "]" * 100000
    assert extract_text(make_event(kind=Kind.METADATA, content=nested)) == ""
    assert extract_text(make_event(kind=Kind.METADATA, content='{"name":' + nested + "}")) == ""
