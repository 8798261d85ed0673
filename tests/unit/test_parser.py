import json

import pytest

from app.modules.generation.parser import (
    FLASHCARD_LIMIT,
    QUIZ_LIMIT,
    extract_json_object,
    heuristic_flashcards,
    heuristic_quiz,
    parse_flashcards,
    parse_quiz,
    parse_theory,
)
from app.modules.wizard.models import SectionKind


def _cards_json(n):
    return json.dumps(
        {"flashcards": [{"front": f"Q{i}", "back": f"A{i}"} for i in range(n)]}
    )


@pytest.mark.unit
def test_extract_json_object_ignores_surrounding_prose():
    text = 'Sure! Here you go:\n```json\n{"flashcards": []}\n```\nGood luck.'
    assert extract_json_object(text) == {"flashcards": []}


@pytest.mark.unit
def test_extract_json_object_returns_none_for_invalid_span():
    assert extract_json_object("{not json}") is None
    assert extract_json_object("no braces at all") is None


@pytest.mark.unit
def test_flashcards_capped_at_fifteen_in_order():
    cards = parse_flashcards(_cards_json(20))
    assert len(cards) == FLASHCARD_LIMIT
    assert [c.front for c in cards] == [f"Q{i}" for i in range(15)]


@pytest.mark.unit
def test_flashcards_missing_fields_become_empty_strings():
    cards = parse_flashcards('{"flashcards": [{"front": "Only front"}]}')
    assert cards[0].front == "Only front"
    assert cards[0].back == ""


@pytest.mark.unit
def test_flashcards_empty_array_is_not_a_fallback_trigger():
    text = '{"flashcards": []}\nfront: ignored\nback: ignored'
    assert parse_flashcards(text) == []


@pytest.mark.unit
def test_heuristic_flashcards_match_strict_output():
    lines = "\n".join(
        [
            "Here are your cards",
            'front: "What is photosynthesis?"',
            "back: Turning light into chemical energy",
            "Front: Where does it happen?",
            'Back: "In the chloroplasts"',
        ]
    )
    strict = parse_flashcards(
        json.dumps(
            {
                "flashcards": [
                    {"front": "What is photosynthesis?", "back": "Turning light into chemical energy"},
                    {"front": "Where does it happen?", "back": "In the chloroplasts"},
                ]
            }
        )
    )
    assert parse_flashcards(lines) == strict


@pytest.mark.unit
def test_heuristic_flashcards_drop_incomplete_trailing_card():
    text = "front: one\nback: uno\nfront: two"
    cards = heuristic_flashcards(text)
    assert [(c.front, c.back) for c in cards] == [("one", "uno")]


@pytest.mark.unit
def test_heuristic_flashcards_capped():
    text = "\n".join(f"front: Q{i}\nback: A{i}" for i in range(20))
    assert len(heuristic_flashcards(text)) == FLASHCARD_LIMIT


@pytest.mark.unit
def test_quiz_drops_question_with_two_options():
    text = json.dumps(
        {
            "quiz": [
                {"question": "Q1", "options": ["A", "B", "C"], "correctAnswer": 1},
                {"question": "Q2", "options": ["A", "B"], "correctAnswer": 0},
            ]
        }
    )
    questions = parse_quiz(text)
    assert len(questions) == 1
    assert questions[0].question == "Q1"
    assert questions[0].correct_answer == 1


@pytest.mark.unit
@pytest.mark.parametrize("answer", [3, -1, "1", None, 1.5, True])
def test_quiz_rejects_invalid_correct_answer(answer):
    text = json.dumps(
        {"quiz": [{"question": "Q", "options": ["A", "B", "C"], "correctAnswer": answer}]}
    )
    assert parse_quiz(text) == []


@pytest.mark.unit
def test_quiz_entries_always_valid_and_capped():
    items = [
        {"question": f"Q{i}", "options": ["A", "B", "C"], "correctAnswer": i % 3}
        for i in range(10)
    ]
    items.insert(2, {"question": "", "options": ["A", "B", "C"], "correctAnswer": 0})
    items.insert(4, {"question": "bad", "options": "ABC", "correctAnswer": 0})
    questions = parse_quiz(json.dumps({"quiz": items}))
    assert len(questions) == QUIZ_LIMIT
    for q in questions:
        assert len(q.options) == 3
        assert q.correct_answer in (0, 1, 2)
    assert questions[0].question == "Q0"
    assert questions[2].question == "Q2"


@pytest.mark.unit
def test_heuristic_quiz_parses_numbered_blocks():
    text = "\n".join(
        [
            "1. Which organelle hosts photosynthesis?",
            "A) Mitochondrion",
            "B) Chloroplast",
            "C) Nucleus",
            "Correct answer: B",
            "2. Incomplete question",
            "A) only one option",
            "3. What gas do plants absorb?",
            "A) CO2",
            "B) O2",
            "C) N2",
            "Antwoord: A",
        ]
    )
    questions = heuristic_quiz(text)
    assert [q.question for q in questions] == [
        "Which organelle hosts photosynthesis?",
        "What gas do plants absorb?",
    ]
    assert questions[0].options == ["Mitochondrion", "Chloroplast", "Nucleus"]
    assert questions[0].correct_answer == 1
    assert questions[1].correct_answer == 0


@pytest.mark.unit
def test_heuristic_quiz_without_answer_line_is_dropped():
    text = "1. Q\nA) x\nB) y\nC) z"
    assert heuristic_quiz(text) == []


@pytest.mark.unit
def test_theory_sections_built_in_fixed_order(theory_json):
    sections = parse_theory(theory_json)
    assert [s.id for s in sections] == [
        "orientation",
        "concept-0",
        "concept-1",
        "connections",
        "application",
        "essence",
    ]
    assert sections[1].title == "Chlorophyll"
    assert sections[1].content == "Green pigment\n\nMetaphor: A solar panel"
    assert sections[2].title == "Concept 2"
    assert sections[4].content == "A houseplant by the window\n\nSteps:\n1. Light\n2. Water\n3. Sugar"
    assert sections[5].kind == SectionKind.ESSENCE
    assert sections[5].content == "• Light in\n• Sugar out"


@pytest.mark.unit
def test_theory_skips_missing_parts():
    sections = parse_theory('{"theory": {"essence": ["Only this"]}}')
    assert [s.kind for s in sections] == [SectionKind.ESSENCE]


@pytest.mark.unit
def test_theory_without_json_yields_no_sections():
    assert parse_theory("Orientation: plants like light") == []


@pytest.mark.unit
def test_answer_letter_taken_from_after_the_keyword():
    text = "\n".join(
        [
            "1. What is the smallest unit of life?",
            "A) An atom",
            "B) A molecule",
            "C) A cell",
            "Correct answer: C) A cell",
            "2. Which gas do plants release?",
            "A) CO2",
            "B) O2",
            "C) N2",
            "B is correct",
        ]
    )
    questions = heuristic_quiz(text)
    assert [q.correct_answer for q in questions] == [2, 1]


@pytest.mark.unit
def test_theory_accepts_plain_string_concepts():
    text = json.dumps(
        {
            "theory": {
                "orientation": "Why plants need light.",
                "concepts": ["Chlorophyll", "Glucose"],
                "connections": "Light becomes sugar.",
                "essence": ["Light in"],
            }
        }
    )
    sections = parse_theory(text)
    assert [s.id for s in sections] == [
        "orientation",
        "concept-0",
        "concept-1",
        "connections",
        "essence",
    ]
    assert sections[1].title == "Chlorophyll"
    assert sections[1].content == ""
    assert sections[2].title == "Glucose"


@pytest.mark.unit
def test_theory_accepts_application_as_text():
    sections = parse_theory(
        '{"theory": {"orientation": "x", "application": "Use it daily"}}'
    )
    assert [s.kind for s in sections] == [SectionKind.ORIENTATION, SectionKind.APPLICATION]
    assert sections[1].content == "Use it daily"


@pytest.mark.unit
def test_theory_keeps_good_parts_next_to_malformed_ones():
    text = json.dumps(
        {
            "theory": {
                "orientation": {"nested": "not text"},
                "concepts": [
                    {"title": "Chlorophyll", "definition": "Green pigment"},
                    {"title": ["not", "text"]},
                    {"title": "Stomata", "metaphor": "Doors"},
                ],
                "application": {"example": None, "steps": "Open the blinds"},
                "essence": "Light in",
            }
        }
    )
    sections = parse_theory(text)
    assert [s.id for s in sections] == ["concept-0", "concept-1", "application", "essence"]
    assert sections[0].content == "Green pigment"
    assert sections[1].title == "Stomata"
    assert sections[1].content == "Metaphor: Doors"
    assert sections[2].content == "Steps:\n1. Open the blinds"
    assert sections[3].content == "• Light in"
