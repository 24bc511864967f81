from typing import Callable, Dict, List, Optional, Tuple
from nltk.tree import Tree
from pytest import fixture
from dcoref.pipeline.core import Document, Sentence, Token
from dcoref.pipeline.corefs import (
    CorefChain,
    CoreferenceResolver,
    Dictionaries,
    Mention,
    MentionFinder,
    ParserAnnotator,
)
from dcoref.pipeline.corefs.arrangement import ArrangedDocument


class FakeParser(ParserAnnotator):
    """Parses each sentence as a flat noun phrase"""

    def __init__(self) -> None:
        self.parsed: List[List[str]] = []

    def parse(self, tokens: List[Token]) -> Tree:
        self.parsed.append([t.text for t in tokens])
        return Tree(
            "ROOT", [Tree("NP", [Tree(t.pos or "NN", [t.text]) for t in tokens])]
        )


class FixedMentionFinder(MentionFinder):
    """Returns predefined ``(start, end, head)`` spans for each
    sentence"""

    instances: List["FixedMentionFinder"] = []

    def __init__(
        self,
        parser: ParserAnnotator,
        allow_reparsing: bool,
        spans: List[List[Tuple[int, int, int]]],
    ) -> None:
        self.parser = parser
        self.allow_reparsing = allow_reparsing
        self.spans = spans
        self.calls = 0
        FixedMentionFinder.instances.append(self)

    def extract_predicted_mentions(
        self, document: Document, max_id: int, dictionaries: Dictionaries
    ) -> List[List[Mention]]:
        assert not document.sentences is None
        self.calls += 1
        mentions = []
        for sent_i, (sentence, spans) in enumerate(
            zip(document.sentences, self.spans)
        ):
            mentions.append(
                [
                    Mention(sentence.words()[start:end], start, end, head, sent_i)
                    for start, end, head in spans
                ]
            )
        return mentions


class SingleChainResolver(CoreferenceResolver):
    """Judges all mentions coreferent"""

    def __init__(self) -> None:
        self._dictionaries = Dictionaries()

    @property
    def dictionaries(self) -> Dictionaries:
        return self._dictionaries

    def coref(self, document: ArrangedDocument) -> Dict[int, CorefChain]:
        mentions = document.all_mentions()
        if len(mentions) == 0:
            return {}
        return {0: CorefChain.from_mentions(0, mentions)}


class SingletonsResolver(SingleChainResolver):
    """Judges no mentions coreferent"""

    def coref(self, document: ArrangedDocument) -> Dict[int, CorefChain]:
        return {
            m.mention_id: CorefChain.from_mentions(m.mention_id, [m])
            for m in document.all_mentions()
        }


def parsed_sentence(tree_str: str, speaker: Optional[str] = None) -> Sentence:
    tree = Tree.fromstring(tree_str)
    words, pos = zip(*tree.pos())
    sentence = Sentence.from_words(list(words), list(pos), tree=tree)
    for token in sentence.tokens:
        token.speaker = speaker
    return sentence


JOHN_SMITH_ARRIVED = "(ROOT (S (NP (NNP John) (NNP Smith)) (VP (VBD arrived)) (. .)))"
HE_LEFT = "(ROOT (S (NP (PRP He)) (VP (VBD left)) (. .)))"


@fixture
def fake_parser() -> FakeParser:
    return FakeParser()


@fixture
def john_smith_document() -> Document:
    """'John Smith arrived . He left .'"""
    return Document(
        "John Smith arrived. He left.",
        [parsed_sentence(JOHN_SMITH_ARRIVED), parsed_sentence(HE_LEFT)],
    )


@fixture
def fixed_finder_factory() -> Callable[..., Callable]:
    """Return a function creating a mention finder factory for the
    given spans"""
    FixedMentionFinder.instances = []

    def make_factory(spans: List[List[Tuple[int, int, int]]]):
        return lambda parser, allow_reparsing: FixedMentionFinder(
            parser, allow_reparsing, spans
        )

    return make_factory


@fixture
def finder_instances(fixed_finder_factory) -> List[FixedMentionFinder]:
    """Mention finders created by ``fixed_finder_factory`` factories"""
    return FixedMentionFinder.instances


@fixture
def single_chain_resolver() -> SingleChainResolver:
    return SingleChainResolver()


@fixture
def singletons_resolver() -> SingletonsResolver:
    return SingletonsResolver()


@fixture
def make_sentence() -> Callable[..., Sentence]:
    return parsed_sentence
