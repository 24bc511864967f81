from __future__ import annotations
from typing import List, Optional, Tuple
from dataclasses import dataclass
from more_itertools import flatten
from nltk.tree import Tree
from dcoref.pipeline.core import Document, Token
from dcoref.pipeline.corefs.mentions import Mention
from dcoref.pipeline.corefs.dictionaries import Dictionaries


def merge_labels(tree: Tree, tokens: List[Token]):
    """Replace the leaves of ``tree`` by ``tokens``, so that tree
    nodes can be mapped to token annotations.  When a token has no
    POS tag, it is taken from its preterminal node.

    Calling this function on an already merged tree is a no-op.

    :raise ValueError: when the number of leaves of ``tree`` is not
        the number of tokens.
    """
    leaves_positions = tree.treepositions("leaves")
    if len(leaves_positions) != len(tokens):
        raise ValueError(
            f"tree has {len(leaves_positions)} leaves but sentence has {len(tokens)} tokens"
        )
    for position, token in zip(leaves_positions, tokens):
        if not tree[position] is token:
            tree[position] = token
        if token.pos is None and len(position) > 0:
            preterminal = tree[position[:-1]]
            if isinstance(preterminal, Tree) and len(preterminal) == 1:
                token.pos = preterminal.label()


def initialize_utterance(tokens: List[Token]):
    """Set the utterance of tokens with no utterance to 0"""
    for token in tokens:
        if token.utterance is None:
            token.utterance = 0


@dataclass
class ArrangedDocument:
    """The input of a coreference resolver"""

    sentences: List[List[Token]]
    trees: List[Optional[Tree]]
    #: for each sentence, mentions sorted by textual position
    ordered_mentions: List[List[Mention]]
    use_marked_discourse: bool = False

    def all_mentions(self) -> List[Mention]:
        """All mentions of the document, in textual order"""
        return list(flatten(self.ordered_mentions))


def mention_order_key(mention: Mention) -> Tuple[int, int, int]:
    """Textual ordering of mentions inside a sentence: by start
    index, then longest span first, then by head index."""
    return (mention.start_idx, -(mention.end_idx - mention.start_idx), mention.head_idx)


class MentionArranger:
    """Consolidates per-sentence mentions into an
    :class:`ArrangedDocument`, filling mentions attributes."""

    def __init__(self, dictionaries: Dictionaries) -> None:
        self.dictionaries = dictionaries

    def arrange(
        self,
        document: Document,
        sentences: List[List[Token]],
        trees: List[Optional[Tree]],
        unordered_mentions: List[List[Mention]],
    ) -> ArrangedDocument:
        """
        :param document: the document being annotated
        :param sentences: tokens of each sentence
        :param trees: tree of each sentence
        :param unordered_mentions: mentions of each sentence, in any
            order

        :return: an :class:`ArrangedDocument`.  Mentions are sorted
                 using :func:`mention_order_key`, and given ids in
                 that order.
        """
        if not len(sentences) == len(trees) == len(unordered_mentions):
            raise ValueError(
                f"misaligned sentences ({len(sentences)}), trees ({len(trees)}) and mentions ({len(unordered_mentions)})"
            )

        ordered_mentions = []
        mention_id = 0
        for sent_i, (tokens, mentions) in enumerate(zip(sentences, unordered_mentions)):
            sent_mentions = sorted(mentions, key=mention_order_key)
            for mention_i, mention in enumerate(sent_mentions):
                self._check_bounds(mention, len(tokens))
                mention.sent_num = sent_i
                mention.mention_num = mention_i
                mention.mention_id = mention_id
                mention_id += 1
                self._process(mention, tokens[mention.head_idx])
            ordered_mentions.append(sent_mentions)

        return ArrangedDocument(
            sentences, trees, ordered_mentions, document.use_marked_discourse
        )

    @staticmethod
    def _check_bounds(mention: Mention, sent_len: int):
        if not 0 <= mention.start_idx < mention.end_idx <= sent_len:
            raise ValueError(f"mention span out of sentence bounds: {mention}")
        if not mention.start_idx <= mention.head_idx < mention.end_idx:
            raise ValueError(f"mention head out of its span: {mention}")

    def _process(self, mention: Mention, head: Token):
        mention.mention_type = self.dictionaries.mention_type(mention, head.pos)
        mention.gender = self.dictionaries.gender(mention)
        mention.number = self.dictionaries.number(mention, head.pos)
        mention.person = self.dictionaries.person(mention)
        mention.speaker = head.speaker
        mention.utterance = head.utterance or 0
