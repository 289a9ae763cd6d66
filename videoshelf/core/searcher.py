# Copyright (c) 2025 Trae AI. All rights reserved.

import re
import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import snowballstemmer
from .models import VideoItem

logger = logging.getLogger(__name__)

PHRASE_SCORE = 100
EXACT_WORD_SCORE = 50
STEM_WORD_SCORE = 30
SUBSTRING_WORD_SCORE = 10

# "+"? followed by a quoted phrase, or "+"? followed by a bare word.
QUERY_PATTERN = re.compile(r'(\+)?"([^"]+)"|(\+)?([^\s"]+)')
CYRILLIC_PATTERN = re.compile(r"[а-яё]", re.IGNORECASE)
# Title words are runs of letters/digits; punctuation and "_" separate them.
TITLE_SPLIT_PATTERN = re.compile(r"[\W_]+")


class TokenType(Enum):
    PHRASE = "PHRASE"
    WORD = "WORD"


@dataclass(frozen=True)
class QueryToken:
    value: str
    type: TokenType
    required: bool = False
    stem: Optional[str] = None


def normalize_text(text: Optional[str]) -> str:
    """
    Case-folds and strips diacritics ("Café" -> "cafe").
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold().strip()


class Stemmer:
    """
    Picks the Russian stemmer for Cyrillic words, English otherwise.
    Memoizes results; one instance per search call since the snowball
    stemmers keep per-call state.
    """

    def __init__(self):
        self._english = snowballstemmer.stemmer("porter")
        self._russian = snowballstemmer.stemmer("russian")
        self._memo: Dict[str, str] = {}

    def stem(self, word: str) -> str:
        cached = self._memo.get(word)
        if cached is not None:
            return cached
        if CYRILLIC_PATTERN.search(word):
            result = self._russian.stemWord(word)
        else:
            result = self._english.stemWord(word)
        self._memo[word] = result
        return result


def parse_query(raw_query: str, stemmer: Optional[Stemmer] = None) -> List[QueryToken]:
    stemmer = stemmer or Stemmer()
    normalized = normalize_text(raw_query)
    tokens: List[QueryToken] = []

    for match in QUERY_PATTERN.finditer(normalized):
        phrase_required, phrase, word_required, word = match.groups()
        if phrase:
            tokens.append(QueryToken(phrase, TokenType.PHRASE, bool(phrase_required)))
        elif word:
            tokens.append(
                QueryToken(word, TokenType.WORD, bool(word_required), stemmer.stem(word))
            )

    logger.debug(f"Parsed query tokens: {tokens}")
    return tokens


class Searcher:
    """
    Ranks already-indexed videos against a query such as
    ``+python "data science" pandas``.
    """

    def search(self, videos: List[VideoItem], raw_query: str) -> List[VideoItem]:
        stemmer = Stemmer()
        tokens = parse_query(raw_query, stemmer)
        if not tokens:
            return []

        scored = []
        for video in videos:
            score = self.score(video, tokens, stemmer)
            if score > 0:
                scored.append((score, video))

        # Stable sorts, least significant key first.
        scored.sort(key=lambda pair: self._title_key(pair[1]))
        scored.sort(key=lambda pair: pair[1].upload_date or "", reverse=True)
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [video for _, video in scored]

    def score(self, video: VideoItem, tokens: List[QueryToken], stemmer: Stemmer) -> int:
        """
        Sum of per-token scores, or 0 once a required token misses.
        """
        title = normalize_text(video.title or video.filename)
        words = [w for w in TITLE_SPLIT_PATTERN.split(title) if w]
        stems = None
        total = 0

        for token in tokens:
            if token.type == TokenType.PHRASE:
                token_score = PHRASE_SCORE if token.value in title else 0
            else:
                if stems is None:
                    stems = {stemmer.stem(w) for w in words}
                token_score = self._score_word(token, words, stems)

            if token.required and token_score == 0:
                return 0
            total += token_score

        return total

    @staticmethod
    def _score_word(token: QueryToken, words: List[str], stems) -> int:
        if token.value in words:
            return EXACT_WORD_SCORE
        if token.stem and token.stem in stems:
            return STEM_WORD_SCORE
        if any(token.value in w for w in words):
            return SUBSTRING_WORD_SCORE
        return 0

    @staticmethod
    def _title_key(video: VideoItem):
        title = video.title or video.filename
        # Case-folded rather than locale collation, so order does not depend on LC_COLLATE.
        return (normalize_text(title), title)
