import pytest

from wordnest.application.text_blanks import (
    BlankPosition,
    create_fill_blanks,
    extract_words_for_matching,
    reconstruct_text,
)


def test_every_occurrence_of_a_target_word_is_blanked():
    modified, positions = create_fill_blanks("The cat sat. The cat ran.", ["cat"])

    assert modified == "The _____ sat. The _____ ran."
    assert [item.originalWord for item in positions] == ["cat", "cat"]
    assert [item.position for item in positions] == [4, 17]
    assert [item.index for item in positions] == [0, 1]


def test_punctuation_and_case_are_ignored_when_matching():
    text = "Cats? No, the Cat,\nand then (cat) again!"
    modified, positions = create_fill_blanks(text, ["CAT"])

    assert [item.originalWord for item in positions] == ["Cat,", "(cat)"]
    assert all(item.word == "cat" for item in positions)
    assert modified == "Cats? No, the _____\nand then _____ again!"


@pytest.mark.parametrize(
    "text, targets",
    [
        ("The cat sat. The cat ran.", ["cat"]),
        ("A  long\ttext, with   odd spacing and a long tail.", ["long", "with"]),
        ("“Hello,” said the fox. Hello again!", ["hello", "fox"]),
        ("Nothing to remove here.", ["absent"]),
    ],
)
def test_blanks_restore_the_original_text(text, targets):
    modified, positions = create_fill_blanks(text, targets)

    assert reconstruct_text(modified, positions) == text
    assert reconstruct_text(modified, [item.to_dict() for item in positions]) == text


def test_reconstruct_rejects_positions_without_a_blank():
    with pytest.raises(ValueError):
        reconstruct_text("No blanks here.", [BlankPosition(position=0, word="no", originalWord="No", index=0)])


def test_matching_words_prefer_highlights_then_long_story_words():
    content = "The brave knight rode through the dark forest. The knight was brave."
    highlighted = [{"word": "Knight", "offset": 10, "length": 6}, {"word": "knight", "offset": 50, "length": 6}]

    words = extract_words_for_matching(content, highlighted, 4)

    assert words == ["knight", "brave", "rode", "through"]


def test_matching_words_are_capped_at_twenty():
    content = " ".join(f"word{i:02d}" for i in range(40))

    assert len(extract_words_for_matching(content, [], 50)) == 20
