from __future__ import annotations
from typing import Dict, List, Optional, Tuple
from nltk.tree import Tree
from dcoref.pipeline.core import Document, Sentence, Token
from dcoref.pipeline.corefs.mentions import Mention
from dcoref.pipeline.corefs.dictionaries import Dictionaries
from dcoref.pipeline.corefs.arrangement import merge_labels


class ParserAnnotator:
    """Something able to parse a sentence on demand.

    .. note::

        A parser annotator is shared between documents annotated
        concurrently: implementations must be thread-safe.
    """

    def parse(self, tokens: List[Token]) -> Tree:
        """Parse a sentence.

        :param tokens: tokens of the sentence
        :return: a constituency tree, which leaves are the words of
            ``tokens``
        """
        raise NotImplementedError()


def named_entities(tokens: List[Token]) -> List[List[Token]]:
    """Group tokens into named entities, using their ``ner`` tags.

    Tags can either be BIO tags in the CoNLL-2002 form (such as
    'B-PER I-PER') or bare entity types (such as 'PERSON').  A
    'B-' tag always starts a new entity.  With bare types, adjacent
    tokens of the same type are considered part of the same entity.

    :return: a list of entities, in apparition order
    """
    entities = []
    current_type: Optional[str] = None
    for token in tokens:
        if token.ner is None or token.ner == "O":
            current_type = None
            continue
        if token.ner.startswith(("B-", "I-")):
            ner_type = token.ner[2:]
        else:
            ner_type = token.ner
        if token.ner.startswith("B-") or ner_type != current_type:
            entities.append([])
        entities[-1].append(token)
        current_type = ner_type
    return entities


class MentionFinder:
    """Extracts candidate mentions from a document.

    .. warning::

        Mention finders may hold per-document state: a new one must be
        created for each annotated document.
    """

    def extract_predicted_mentions(
        self, document: Document, max_id: int, dictionaries: Dictionaries
    ) -> List[List[Mention]]:
        """
        :param document: a document with merged sentences labels
        :param max_id: mention ids given by this finder start at
            ``max_id``.  These ids are provisional: they are replaced
            once mentions are arranged.
        :param dictionaries:

        :return: for each sentence, a list of mentions, in no
                 particular order
        """
        raise NotImplementedError()


#: POS tags that can head a mention, by decreasing preference
HEAD_POS_PREFIXES = ("NN", "PRP", "CD")


def find_head(np: Tree) -> Token:
    """Find the head token of a noun phrase.

    The rightmost nominal preterminal child is the head.  If there is
    no such child, the head of the first nested noun phrase is used
    (as in 'the man with a hat'), and as a last resort the last token.

    :param np: a merged NP subtree
    """
    for child in reversed(np):
        if (
            isinstance(child, Tree)
            and len(child) == 1
            and isinstance(child[0], Token)
            and child.label().startswith(HEAD_POS_PREFIXES)
        ):
            return child[0]
    for child in np:
        if isinstance(child, Tree) and child.label().startswith("NP"):
            return find_head(child)
    return np.leaves()[-1]


class RuleBasedMentionFinder(MentionFinder):
    """A mention finder using simple syntactic rules: noun phrases,
    pronouns and named entities are mentions."""

    def __init__(self, parser: ParserAnnotator, allow_reparsing: bool) -> None:
        """
        :param parser: used to parse sentences without a tree
        :param allow_reparsing: if ``False``, sentences without a tree
            are not parsed, and only pronouns and named entities are
            found in them.
        """
        self.parser = parser
        self.allow_reparsing = allow_reparsing
        self.reparsed_sentences: List[int] = []

    def extract_predicted_mentions(
        self, document: Document, max_id: int, dictionaries: Dictionaries
    ) -> List[List[Mention]]:
        assert not document.sentences is None

        all_mentions = []
        mention_id = max_id
        for sent_i, sentence in enumerate(document.sentences):
            # (start, end) => head. Insertion order is discovery order.
            spans: Dict[Tuple[int, int], int] = {}

            tree = self._sentence_tree(sent_i, sentence)
            if not tree is None:
                self._extract_noun_phrases(tree, spans)
            self._extract_named_entities(sentence.tokens, spans)
            self._extract_pronouns(sentence.tokens, dictionaries, spans)

            mentions = []
            for (start, end), head in spans.items():
                if sentence.tokens[head].text.lower() in dictionaries.non_words:
                    continue
                mentions.append(
                    Mention(
                        sentence.words()[start:end],
                        start,
                        end,
                        head,
                        sent_i,
                        mention_id=mention_id,
                    )
                )
                mention_id += 1
            all_mentions.append(mentions)

        return all_mentions

    def _sentence_tree(self, sent_i: int, sentence: Sentence) -> Optional[Tree]:
        if not sentence.tree is None:
            return sentence.tree
        if not self.allow_reparsing:
            return None
        tree = self.parser.parse(sentence.tokens)
        merge_labels(tree, sentence.tokens)
        sentence.tree = tree
        self.reparsed_sentences.append(sent_i)
        return tree

    @staticmethod
    def _extract_noun_phrases(tree: Tree, spans: Dict[Tuple[int, int], int]):
        for np in tree.subtrees(lambda t: t.label().startswith("NP")):
            leaves = np.leaves()
            span = (leaves[0].index, leaves[-1].index + 1)
            if not span in spans:
                spans[span] = find_head(np).index

    @staticmethod
    def _extract_named_entities(
        tokens: List[Token], spans: Dict[Tuple[int, int], int]
    ):
        for entity in named_entities(tokens):
            span = (entity[0].index, entity[-1].index + 1)
            if not span in spans:
                spans[span] = entity[-1].index

    @staticmethod
    def _extract_pronouns(
        tokens: List[Token],
        dictionaries: Dictionaries,
        spans: Dict[Tuple[int, int], int],
    ):
        for token in tokens:
            if token.pos is None:
                is_pronoun = dictionaries.is_pronoun(token.text)
            else:
                is_pronoun = token.pos in {"PRP", "PRP$"}
            span = (token.index, token.index + 1)
            if is_pronoun and not span in spans:
                spans[span] = token.index
