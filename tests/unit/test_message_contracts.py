"""
Queue message contract tests: audit, vector and notification wire formats.
"""

import json

import pytest

from core.models import (
    AnalysisResult,
    Content,
    IndexDocument,
    NotificationEvent,
    NotificationEventType,
    ProceedEvent,
    Task,
    parse_task_reference,
)
from exceptions import MessageFormatError
from tests.factories.model_factories import make_analysis, make_content


class TestParseTaskReference:

    @pytest.mark.parametrize("body,expected", [
        ("42", "42"),
        ('"42"', "42"),
        (" 42 \n", "42"),
        ("abc-123", "abc-123"),
        ('"  7 "', "7"),
    ])
    def test_accepts_bare_ids(self, body, expected):
        assert parse_task_reference(body).id == expected

    @pytest.mark.parametrize("body", ["", "   ", "null", '{"id": 1}', "[1, 2]", "true", '""'])
    def test_rejects_non_ids(self, body):
        with pytest.raises(MessageFormatError):
            parse_task_reference(body)

    def test_reference_defaults_to_id(self):
        task = parse_task_reference("99")
        assert task.reference == "99"
        assert Task(id=99, payload_reference="blob/99").reference == "blob/99"


class TestProceedEvent:

    def test_wire_uses_camel_case(self):
        event = ProceedEvent(task_id="5", analysis_result=make_analysis())
        wire = json.loads(event.to_message_body())
        assert set(wire) == {"taskId", "analysisResult"}
        assert set(wire["analysisResult"]) == {"approved", "keywords", "reason"}

    def test_decodes_numeric_task_id(self):
        body = json.dumps({"taskId": 42, "analysisResult": {"approved": True, "keywords": ["a"], "reason": ""}})
        event = ProceedEvent.from_message_body(body)
        assert event.task_id == "42"
        assert event.analysis_result.keywords == ["a"]

    def test_round_trip_preserves_analysis(self):
        analysis = make_analysis()
        event = ProceedEvent(task_id="8", analysis_result=analysis)
        assert ProceedEvent.from_message_body(event.to_message_body()).analysis_result == analysis

    @pytest.mark.parametrize("body", ["garbage", "{}", '{"taskId": 1}', '{"taskId": null, "analysisResult": {"approved": true}}'])
    def test_invalid_body(self, body):
        with pytest.raises(MessageFormatError):
            ProceedEvent.from_message_body(body)


class TestAnalysisResult:

    def test_null_fields_normalized(self):
        result = AnalysisResult.model_validate({"approved": False, "keywords": None, "reason": None})
        assert result.keywords == []
        assert result.reason == ""


class TestNotificationEvent:

    def test_wire_keys(self):
        event = NotificationEvent(
            actor_id=3, target_user_id=4, event_type=NotificationEventType.ARTICLE_LIKED,
            resource_id=10, resource_slug="s", payload="p",
        )
        wire = json.loads(event.to_message_body())
        assert wire["actorId"] == 3
        assert wire["targetUserId"] == 4
        assert wire["eventType"] == "ARTICLE_LIKED"
        assert wire["resourceId"] == "10"

    def test_self_notification(self):
        assert NotificationEvent(actor_id=5, target_user_id=5, event_type="COMMENT_LIKED").is_self_notification
        assert not NotificationEvent(actor_id=None, target_user_id=5, event_type="COMMENT_LIKED").is_self_notification

    def test_unknown_event_type_rejected(self):
        with pytest.raises(MessageFormatError):
            NotificationEvent.from_message_body('{"targetUserId": 1, "eventType": "NOPE"}')


class TestContentModels:

    def test_numeric_task_id_stringified(self):
        content = make_content(task_id=123)
        assert content.task_id == "123"

    def test_index_document_from_content(self):
        content = make_content()
        doc = IndexDocument.build(content, ["k1", "k2"], [0.1, 0.2])
        dumped = doc.model_dump(by_alias=True)
        assert dumped["id"] == content.task_id
        assert dumped["createdAt"] == content.created_at
        assert dumped["keywords"] == ["k1", "k2"]
        assert dumped["tags"] == content.tags
        assert dumped["author"] == content.author_name

    def test_index_document_copies_lists(self):
        content = make_content()
        keywords = ["k"]
        doc = IndexDocument.build(content, keywords, [1.0])
        keywords.append("mutated")
        assert doc.keywords == ["k"]

    def test_none_tags_become_empty(self):
        assert Content(task_id="1", slug="s", title="t", author_id=1, tags=None).tags == []
