"""Tests for lexicon polarity scoring."""
import pytest

from app.pipeline.sentiment import polarity, tokenize


def test_tokenize_lowercases_and_strips_punctuation():
    assert tokenize("Wow, C'est GÉNIAL!!") == ["wow", "c'est", "génial"]


def test_empty_text_is_neutral():
    assert polarity("") == 0.0
    assert polarity("   ") == 0.0
    assert polarity(None) == 0.0


def test_unknown_words_are_neutral():
    assert polarity("the table is brown") == 0.0


def test_comparative_score():
    # "amazing" = 4 over 4 tokens
    assert polarity("this is so amazing") == pytest.approx(1.0)


def test_negative_text():
    assert polarity("terrible") < 0


def test_french_words():
    assert polarity("c'est incroyable") > 0
    assert polarity("quelle catastrophe") < 0


def test_negation_flips_sign():
    assert polarity("not good") == pytest.approx(-1.5)
    assert polarity("pas mauvais") > 0
