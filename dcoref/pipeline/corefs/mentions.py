from __future__ import annotations
from typing import List, Literal, Optional, Tuple
from dataclasses import dataclass

MentionType = Literal["PROPER", "NOMINAL", "PRONOMINAL"]
Gender = Literal["MALE", "FEMALE", "NEUTRAL", "UNKNOWN"]
Number = Literal["SINGULAR", "PLURAL", "UNKNOWN"]


@dataclass
class Mention:
    """A candidate mention, contiguous inside a sentence.

    All indices start at 0.
    """

    tokens: List[str]
    start_idx: int
    #: exclusive
    end_idx: int
    head_idx: int
    #: index of the sentence containing the mention
    sent_num: int

    # the following attributes are set by the arranger
    mention_id: int = -1
    #: position of the mention in the ordered mentions of its sentence
    mention_num: int = -1
    mention_type: MentionType = "NOMINAL"
    gender: Gender = "UNKNOWN"
    number: Number = "UNKNOWN"
    #: ``1``, ``2`` or ``3`` for personal pronouns, ``0`` otherwise
    person: int = 0
    speaker: Optional[str] = None
    utterance: int = 0

    @property
    def head_word(self) -> str:
        return self.tokens[self.head_idx - self.start_idx]

    def span_str(self) -> str:
        return " ".join(self.tokens)

    def span(self) -> Tuple[int, int, int]:
        return (self.sent_num, self.start_idx, self.end_idx)

    def __hash__(self) -> int:
        return hash(self.span())


@dataclass(frozen=True)
class CorefMention:
    """A mention, as found in a :class:`CorefChain`.  All indices
    start at 0."""

    mention_id: int
    sent_num: int
    mention_num: int
    start_idx: int
    end_idx: int
    head_idx: int
    tokens: Tuple[str, ...]
    mention_type: MentionType
    gender: Gender
    number: Number

    @staticmethod
    def from_mention(mention: Mention) -> CorefMention:
        return CorefMention(
            mention.mention_id,
            mention.sent_num,
            mention.mention_num,
            mention.start_idx,
            mention.end_idx,
            mention.head_idx,
            tuple(mention.tokens),
            mention.mention_type,
            mention.gender,
            mention.number,
        )

    def position(self) -> Tuple[int, int]:
        """
        :return: ``(sentence index, index of the mention in its
                 sentence)``
        """
        return (self.sent_num, self.mention_num)

    def textual_key(self) -> Tuple[int, int, int]:
        return (self.sent_num, self.start_idx, -self.end_idx)


_MENTION_TYPE_RANK = {"PROPER": 0, "NOMINAL": 1, "PRONOMINAL": 2}


@dataclass(frozen=True)
class CorefChain:
    """A set of mentions referring to the same entity"""

    chain_id: int
    #: mentions, in textual order
    mentions: Tuple[CorefMention, ...]

    @staticmethod
    def from_mentions(chain_id: int, mentions: List[Mention]) -> CorefChain:
        coref_mentions = sorted(
            (CorefMention.from_mention(m) for m in mentions),
            key=CorefMention.textual_key,
        )
        return CorefChain(chain_id, tuple(coref_mentions))

    @property
    def representative(self) -> CorefMention:
        """The most informative mention of the chain: proper mentions
        first, then nominal mentions, then pronouns.  Ties are broken
        by textual order."""
        return min(
            enumerate(self.mentions),
            key=lambda i_m: (_MENTION_TYPE_RANK[i_m[1].mention_type], i_m[0]),
        )[1]

    def __len__(self) -> int:
        return len(self.mentions)

    def __repr__(self) -> str:
        return f"<chain {self.chain_id}: {' | '.join(' '.join(m.tokens) for m in self.mentions)}>"
