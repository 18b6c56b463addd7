"""
Seed script for the demo learning path.

Creates three published videos, each gated by a quiz that uses every
question type. Can be run multiple times - skips videos that already exist.

Usage:
    uv run python app/scripts/seed_demo_path.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy.orm import Session

from app.catalog.models import Question, QuestionOption, QuestionType, Quiz, Video
from app.core.datetime_utils import utcnow
from app.db.session import get_db

DEMO_VIDEOS = [
    {
        "title": "Welcome to the platform",
        "description": "How the learning path works and how videos unlock.",
        "duration_seconds": 180,
        "topic": "the learning path",
    },
    {
        "title": "Watching and progress",
        "description": "How watch time is tracked and when a quiz is offered.",
        "duration_seconds": 300,
        "topic": "watch progress",
    },
    {
        "title": "Quizzes and retakes",
        "description": "Scoring rules, passing scores and retake limits.",
        "duration_seconds": 420,
        "topic": "quizzes",
    },
]


def _build_quiz(video: Video, topic: str) -> Quiz:
    quiz = Quiz(
        video_id=video.id,
        title=f"Quiz: {video.title}",
        description=f"Check what you learned about {topic}.",
        passing_score_percent=60,
        time_limit_seconds=600,
        allow_retake=True,
        max_attempts=3,
    )

    single = Question(
        text="Which video unlocks after you pass this quiz?",
        question_type=QuestionType.SINGLE_CHOICE,
        points=2,
        sort_order=1,
        explanation="Passing a quiz completes its video and unlocks the next one.",
        options=[
            QuestionOption(text="The next video in the path", is_correct=True, sort_order=1),
            QuestionOption(text="Every remaining video", sort_order=2),
            QuestionOption(text="None", sort_order=3),
        ],
    )
    multi = Question(
        text="Which of these are recorded for each video you watch?",
        question_type=QuestionType.MULTI_CHOICE,
        points=2,
        sort_order=2,
        explanation="Both are recorded; partial answers score zero.",
        options=[
            QuestionOption(text="Total watch time", is_correct=True, sort_order=1),
            QuestionOption(text="Completion percentage", is_correct=True, sort_order=2),
            QuestionOption(text="Playback speed", sort_order=3),
            QuestionOption(text="Screen size", sort_order=4),
        ],
    )
    true_false = Question(
        text="Watching a video twice lowers its completion percentage.",
        question_type=QuestionType.TRUE_FALSE,
        points=1,
        sort_order=3,
        options=[
            QuestionOption(text="True", sort_order=1),
            QuestionOption(text="False", is_correct=True, sort_order=2),
        ],
    )
    free_text = Question(
        text="What status does a video have before its predecessor is completed?",
        question_type=QuestionType.FREE_TEXT,
        points=1,
        sort_order=4,
        correct_answer="locked",
    )

    quiz.questions = [single, multi, true_false, free_text]
    return quiz


def seed_demo_path(db: Session) -> None:
    """Seed the demo path into the database."""
    last_video = db.query(Video).order_by(Video.sort_order.desc()).first()
    sort_order = last_video.sort_order + 1 if last_video else 1
    created = 0

    for demo in DEMO_VIDEOS:
        if db.query(Video).filter(Video.title == demo["title"]).first():
            print(f"⏭️  Video already exists: {demo['title']}. Skipping.")
            continue

        video = Video(
            title=demo["title"],
            description=demo["description"],
            duration_seconds=demo["duration_seconds"],
            sort_order=sort_order,
            is_published=True,
            published_at=utcnow(),
        )
        db.add(video)
        db.flush()
        db.add(_build_quiz(video, str(demo["topic"])))
        db.flush()
        print(f"✅ Created video #{sort_order}: {video.title} (with quiz)")

        sort_order += 1
        created += 1

    db.commit()

    print("\n" + "=" * 60)
    print("🎉 Demo path seeding complete!")
    print(f"   Videos created: {created}")
    print("=" * 60)


def main() -> None:
    """Main entry point."""
    print("=" * 60)
    print("🌱 Demo Learning Path Seeding Script")
    print("=" * 60)
    print()

    db = next(get_db())
    try:
        seed_demo_path(db)
    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
