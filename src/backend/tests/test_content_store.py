"""
内容存储单元测试
"""
import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from conftest import create_topic, add_question, answers_of  # noqa: E402
from exam_engine.models import Exam, ExamStatus  # noqa: E402
from exam_engine.services.content_store import ContentStore  # noqa: E402


class TestQuestionReads:
    """题目与选项读取"""

    def test_question_content_keeps_requested_order(self, db_session):
        topic = create_topic(db_session)
        first = add_question(db_session, topic, content="第一题")
        second = add_question(db_session, topic, content="第二题")
        store = ContentStore(db_session)

        content = store.get_question_content([second.id, "missing", first.id])

        assert [item["id"] for item in content] == [second.id, first.id]
        assert content[0]["content"] == "第二题"

    def test_active_answers_in_display_order(self, db_session):
        topic = create_topic(db_session)
        question = add_question(db_session, topic, num_options=4)
        answers = answers_of(db_session, question)
        answers[0].sort_order = 10
        answers[3].is_active = False
        db_session.commit()

        active = ContentStore(db_session).get_active_answers(question.id)

        assert [a.id for a in active] == [answers[1].id, answers[2].id, answers[0].id]

    def test_active_question_ids_sorted(self, db_session):
        topic = create_topic(db_session)
        ids = [add_question(db_session, topic).id for _ in range(5)]

        assert ContentStore(db_session).get_active_question_ids(topic.id) == sorted(ids)


class TestExamWrites:
    """考试记录写入"""

    def test_get_or_create_is_idempotent(self, db_session):
        topic = create_topic(db_session)
        store = ContentStore(db_session)

        exam, created = store.get_or_create_exam("s1", topic.id)
        db_session.commit()
        again, created_again = store.get_or_create_exam("s1", topic.id)
        db_session.commit()

        assert created is True
        assert created_again is False
        assert again.id == exam.id
        assert exam.status == ExamStatus.IN_PROGRESS
        assert exam.attempts_count == 1
        assert db_session.query(Exam).count() == 1

    def test_conditional_update(self, db_session):
        topic = create_topic(db_session)
        store = ContentStore(db_session)
        exam, _ = store.get_or_create_exam("s1", topic.id)
        db_session.commit()

        assert store.update_exam(exam.id, {"score": 90}, expected_status=ExamStatus.SUBMITTED) is False
        assert store.update_exam(exam.id, {"score": 90}, expected_status=ExamStatus.IN_PROGRESS) is True
        db_session.commit()

        assert db_session.get(Exam, exam.id).score == 90

    def test_update_rejects_unknown_fields(self, db_session):
        topic = create_topic(db_session)
        store = ContentStore(db_session)
        exam, _ = store.get_or_create_exam("s1", topic.id)

        with pytest.raises(ValueError):
            store.update_exam(exam.id, {"student_id": "someone-else"})

    def test_update_missing_exam(self, db_session):
        assert ContentStore(db_session).update_exam("missing", {"score": 1}) is False
