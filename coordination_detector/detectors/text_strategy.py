"""
PROJECT:
-------
coordinated-sharing-detection

TITLE:
------
text_strategy.py

MAIN OBJECTIVE:
---------------
This script implements coordinated message sharing matching: posts are equivalent when their
messages, once hyperlinks are removed, are near-identical under bag-of-words cosine similarity.

Dependencies:
-------------
- re
- numpy
- networkx
- scikit-learn
- collections
- typing

MAIN FEATURES:
--------------
1) Hyperlink stripping and removal of messages without word characters
2) Term-count vectorization with scikit-learn (case-insensitive)
3) Pairwise cosine similarity on sparse vectors
4) Single-linkage grouping through connected components of the similarity graph
5) Most frequent message kept as the group representative, others recorded as variants
6) Search results accepted on whole-message containment or on similarity

Author:
-------
Antoine Lemor
"""

import re
from collections import Counter
from typing import List, Dict, Optional

import numpy as np
import networkx as nx
from sklearn.feature_extraction.text import CountVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from coordination_detector.core.constants import STRATEGY_TEXT, STRATEGY_FIELDS
from coordination_detector.core.models import Event, ContentGroup, make_group_id
from coordination_detector.detectors.base_strategy import ContentMatchingStrategy

HYPERLINK_PATTERN = re.compile(r"\s?(?:f|ht)tps?://\S+")
WORD_PATTERN = re.compile(r"\w")
TOKEN_PATTERN = r"(?u)\b\w+\b"


def strip_hyperlinks(text: Optional[str]) -> str:
    """Remove hyperlinks and surrounding whitespace from a message."""
    if not text:
        return ""
    return HYPERLINK_PATTERN.sub("", text).strip()


def has_words(text: str) -> bool:
    return bool(WORD_PATTERN.search(text))


def contains_message(text: str, message: str) -> bool:
    """Case-sensitive containment of a whole message, not part of a longer word."""
    if not message:
        return False
    return re.search(r"(?<!\w)" + re.escape(message) + r"(?!\w)", text) is not None


class FuzzyTextStrategy(ContentMatchingStrategy):
    """
    Groups near-identical messages.

    Two messages are linked when their cosine similarity reaches the configured
    threshold; a group is a connected component of that relation, so two messages
    below the threshold can share a group through a third one.
    """

    name = STRATEGY_TEXT
    content_field = STRATEGY_FIELDS[STRATEGY_TEXT]
    uses_content_search = True

    def find_candidates(self, events: List[Event]) -> List[ContentGroup]:
        by_text: Dict[str, List[Event]] = {}
        for event in events:
            text = strip_hyperlinks(event.content_key)
            if not has_words(text):
                continue
            by_text.setdefault(text, []).append(event)

        if not by_text:
            return []

        texts = sorted(by_text)
        graph = nx.Graph()
        graph.add_nodes_from(range(len(texts)))

        if len(texts) > 1:
            vectors = CountVectorizer(token_pattern=TOKEN_PATTERN).fit_transform(texts)
            similarity = cosine_similarity(vectors, dense_output=False).tocoo()
            threshold = self.config.similarity_threshold
            mask = (similarity.row < similarity.col) & (similarity.data >= threshold)
            graph.add_edges_from(zip(similarity.row[mask].tolist(), similarity.col[mask].tolist()))
            self.logger.debug(f"{int(np.count_nonzero(mask))} message pairs above similarity {threshold}")

        groups = []
        for component in nx.connected_components(graph):
            members = [texts[i] for i in component]
            group_events = [e for text in members for e in by_text[text]]
            if len(group_events) < 2:
                continue

            counts = Counter({text: len(by_text[text]) for text in members})
            representative = min(members, key=lambda t: (-counts[t], t))

            groups.append(ContentGroup(
                group_id=make_group_id(self.name, representative),
                content_key=representative,
                strategy=self.name,
                events=sorted(group_events, key=lambda e: (e.timestamp, e.actor_id)),
                variants=sorted(t for t in members if t != representative)
            ))

        groups.sort(key=lambda g: g.content_key)
        return groups

    def accepts(self, group: ContentGroup, event: Event) -> bool:
        text = strip_hyperlinks(event.content_key)
        if not has_words(text):
            return False

        if contains_message(text, group.content_key):
            return True
        return self.similarity(group.content_key, text) >= self.config.similarity_threshold

    @staticmethod
    def similarity(first: str, second: str) -> float:
        """Cosine similarity of two messages on term counts."""
        try:
            vectors = CountVectorizer(token_pattern=TOKEN_PATTERN).fit_transform([first, second])
        except ValueError:
            # Empty vocabulary
            return 0.0
        return float(cosine_similarity(vectors[0], vectors[1])[0, 0])
