"""Sample catalog content used on first startup and by scripts/seed_data.py."""

import logging

from mocktest.models import Course, MockTest, Question
from mocktest.storage import Storage

logger = logging.getLogger(__name__)

COURSE_IMAGES = [
    "https://images.unsplash.com/photo-1472289065668-ce650ac443d2",
    "https://images.unsplash.com/photo-1493723843671-1d655e66ac1c",
    "https://images.unsplash.com/photo-1557804483-ef3ae78eca57",
    "https://images.unsplash.com/photo-1517048676732-d65bc937f952",
]

SAMPLE_TESTS = [
    {
        "title": "Python Fundamentals",
        "description": "Core syntax, data types and control flow.",
        "duration_minutes": 10,
        "difficulty": "beginner",
        "questions": [
            ("Which keyword defines a function?", ["func", "def", "lambda", "fn"], 1,
             "Functions are defined with the def keyword."),
            ("What does len([1, 2, 3]) return?", ["2", "3", "4", "An error"], 1,
             "len returns the number of items in the list."),
            ("Which type is immutable?", ["list", "dict", "tuple", "set"], 2,
             "Tuples cannot be changed after creation."),
        ],
    },
    {
        "title": "Web APIs",
        "description": "HTTP methods, status codes and REST conventions.",
        "duration_minutes": 15,
        "difficulty": "intermediate",
        "questions": [
            ("Which status code means 'Created'?", ["200", "201", "204", "400"], 1,
             "201 is returned when a new resource was created."),
            ("Which method is idempotent?", ["POST", "PUT", "PATCH", "None of them"], 1,
             "Repeating a PUT leaves the resource in the same state."),
        ],
    },
]


def seed_sample_data(storage: Storage) -> bool:
    """Insert sample courses and mock tests when the catalog is empty.

    Returns True when data was inserted.
    """
    if storage.list_courses() or storage.list_mock_tests():
        return False

    for index, image_url in enumerate(COURSE_IMAGES):
        storage.create_course(
            Course(
                title=f"Sample Course {index + 1}",
                description=(
                    "This is a sample course description that showcases what "
                    "you'll learn in this comprehensive program."
                ),
                image_url=image_url,
                duration="10 weeks",
                price=99,
                featured=index == 0,
            )
        )

    for index, sample in enumerate(SAMPLE_TESTS):
        mock_test = storage.create_mock_test(
            MockTest(
                title=sample["title"],
                description=sample["description"],
                duration_minutes=sample["duration_minutes"],
                total_questions=len(sample["questions"]),
                difficulty=sample["difficulty"],
                image_url=COURSE_IMAGES[index],
                featured=index == 0,
            )
        )
        for text, options, correct, explanation in sample["questions"]:
            storage.create_question(
                Question(
                    mock_test_id=mock_test.id,
                    text=text,
                    options=options,
                    correct_option=correct,
                    explanation=explanation,
                )
            )

    logger.info(
        "Seeded %d courses and %d mock tests", len(COURSE_IMAGES), len(SAMPLE_TESTS)
    )
    return True
