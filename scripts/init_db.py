#!/usr/bin/env python3
"""
数据库初始化脚本
创建所有数据库表，可选写入一个演示专题
"""
import sys
import os
import argparse
import uuid
from pathlib import Path

# Add src/backend to path
backend_dir = Path(__file__).parent / ".." / "src" / "backend"
sys.path.insert(0, str(backend_dir))

# Change to backend directory so relative paths work
os.chdir(str(backend_dir))

# Ensure data directory exists
data_dir = Path("data")
data_dir.mkdir(exist_ok=True)

from exam_engine.models import Topic, Question, Answer, init_db, drop_all

DEMO_QUESTIONS = [
    {
        "content": "HTTPS 默认使用哪个端口？",
        "options": [("443", True), ("80", False), ("8080", False), ("22", False)],
    },
    {
        "content": "以下哪些属于对称加密算法？",
        "options": [("AES", True), ("DES", True), ("RSA", False), ("ECC", False)],
    },
    {
        "content": "SQL 注入的根本防御手段是？",
        "options": [("参数化查询", True), ("隐藏错误信息", False), ("关闭数据库日志", False)],
    },
]


def create_demo_topic(db) -> Topic:
    """写入演示专题和题目"""
    topic = Topic(
        id=str(uuid.uuid4()),
        name="网络安全基础（演示）",
        description="初始化脚本生成的演示专题",
        duration_minutes=30,
        pass_score=70,
        question_count=None,
    )
    db.add(topic)

    for item in DEMO_QUESTIONS:
        correct_count = sum(1 for _, is_correct in item["options"] if is_correct)
        question = Question(
            id=str(uuid.uuid4()),
            topic_id=topic.id,
            content=item["content"],
            is_multiple_choice=correct_count > 1,
        )
        db.add(question)
        for idx, (text, is_correct) in enumerate(item["options"]):
            db.add(Answer(
                id=str(uuid.uuid4()),
                question_id=question.id,
                content=text,
                is_correct=is_correct,
                sort_order=idx,
            ))

    db.commit()
    return topic


def main():
    parser = argparse.ArgumentParser(description="初始化考试引擎数据库")
    parser.add_argument("--drop", action="store_true", help="先删除所有表（仅开发环境）")
    parser.add_argument("--demo", action="store_true", help="写入一个演示专题")
    args = parser.parse_args()

    from exam_engine.core.database import SessionLocal

    if args.drop:
        drop_all()

    print("初始化数据库...")
    init_db()

    if args.demo:
        db = SessionLocal()
        try:
            topic = create_demo_topic(db)
            print(f"演示专题已创建: {topic.id}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    print("完成！")


if __name__ == "__main__":
    main()
