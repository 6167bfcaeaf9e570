"""Lexicon-based polarity scoring for short transcript spans.

Scores follow the AFINN convention: each known word carries an integer
valence in [-5, 5]. The polarity of a text is the sum of the valences of its
tokens divided by the number of tokens (the "comparative" score), so it is
roughly centered on zero and independent of the span length.
"""
import re
from typing import Dict, List

# English and French terms common in spoken, creator-style content.
LEXICON: Dict[str, int] = {
    # strongly positive
    "amazing": 4, "awesome": 4, "incredible": 4, "fantastic": 4, "brilliant": 4,
    "outstanding": 5, "superb": 5, "breathtaking": 5, "wow": 4, "love": 3,
    "incroyable": 4, "génial": 4, "genial": 4, "magnifique": 4, "excellent": 3,
    "parfait": 3, "perfect": 3, "extraordinaire": 4, "formidable": 4,
    # mildly positive
    "good": 3, "great": 3, "best": 3, "better": 2, "happy": 3, "win": 4,
    "wins": 4, "winner": 4, "success": 2, "easy": 1, "fun": 4, "cool": 1,
    "like": 2, "nice": 3, "useful": 2, "free": 1, "secret": 1, "top": 2,
    "bien": 2, "bon": 3, "bonne": 3, "super": 3, "gagne": 3, "gagner": 3,
    "réussite": 3, "reussite": 3, "facile": 1, "merci": 2, "thanks": 2,
    "content": 2, "heureux": 3, "aime": 2, "adore": 3, "bravo": 3,
    # mildly negative
    "bad": -3, "wrong": -2, "mistake": -2, "mistakes": -2, "problem": -2,
    "problems": -2, "fail": -2, "failed": -2, "sad": -2, "hard": -1,
    "difficult": -1, "boring": -3, "worse": -3, "lose": -3, "lost": -3,
    "erreur": -2, "erreurs": -2, "problème": -2, "probleme": -2, "difficile": -1,
    "perdu": -3, "perdre": -3, "triste": -2, "ennuyeux": -3, "mauvais": -3,
    "mauvaise": -3, "dommage": -2, "échec": -2, "echec": -2,
    # strongly negative
    "hate": -3, "terrible": -3, "awful": -3, "horrible": -3, "worst": -3,
    "disaster": -2, "stupid": -2, "angry": -3, "déteste": -3, "deteste": -3,
    "nul": -3, "nulle": -3, "catastrophe": -3, "pire": -3, "honte": -2,
}

NEGATORS = frozenset({
    "not", "no", "never", "don't", "dont", "isn't", "isnt", "can't", "cant",
    "won't", "wont", "ne", "pas", "jamais", "aucun", "aucune",
})

_TOKEN_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)?", re.UNICODE)


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens with surrounding punctuation dropped."""
    return _TOKEN_RE.findall((text or "").lower())


def polarity(text: str) -> float:
    """
    Comparative polarity of ``text``.

    A valence word directly preceded by a negator has its sign flipped.

    Returns:
        Sum of token valences divided by token count (0.0 for empty text)
    """
    tokens = tokenize(text)
    if not tokens:
        return 0.0

    total = 0
    for i, token in enumerate(tokens):
        valence = LEXICON.get(token, 0)
        if valence and i > 0 and tokens[i - 1] in NEGATORS:
            valence = -valence
        total += valence

    return total / len(tokens)
