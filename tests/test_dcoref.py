from concurrent.futures import ThreadPoolExecutor
from typing import List
import networkx as nx
import pytest
from hypothesis import given, settings, HealthCheck
import hypothesis.strategies as st
from nltk.tree import Tree
from dcoref.pipeline.core import (
    Document,
    Sentence,
    ConfigurationError,
    ProcessingError,
)
from dcoref.pipeline.corefs import (
    DeterministicCorefAnnotator,
    Mention,
    SieveCoreferenceResolver,
)


def _all_tokens(document: Document):
    assert not document.sentences is None
    return [token for sentence in document.sentences for token in sentence.tokens]


def test_round_trip(
    john_smith_document, fake_parser, fixed_finder_factory, single_chain_resolver
):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=single_chain_resolver,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)]]),
    )
    document = annotator.annotate(john_smith_document)

    assert not document.coref_chains is None
    assert len(document.coref_chains) == 1
    chain = document.coref_chains[0]
    assert [m.tokens for m in chain.mentions] == [("John", "Smith"), ("He",)]

    assert document.coref_graph == [((2, 1), (1, 2))]

    smith = document.sentences[0].tokens[1]
    he = document.sentences[1].tokens[0]
    assert smith.coref_cluster == frozenset({smith, he})
    assert he.coref_cluster is smith.coref_cluster
    assert {t.text for t in smith.coref_cluster} == {"Smith", "He"}
    for token in _all_tokens(document):
        if not token in (smith, he):
            assert token.coref_cluster is None


def test_round_trip_with_default_components(john_smith_document, fake_parser):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True, parser_annotator=fake_parser
    )
    document = annotator.annotate(john_smith_document)

    assert not document.coref_chains is None
    assert len(document.coref_chains) == 1
    chain = list(document.coref_chains.values())[0]
    assert [" ".join(m.tokens) for m in chain.mentions] == ["John Smith", "He"]
    assert chain.representative.tokens == ("John", "Smith")
    assert document.coref_graph == [((2, 1), (1, 2))]
    # trees were given: nothing should have been reparsed
    assert fake_parser.parsed == []


def test_document_without_sentences_is_not_annotated(capsys):
    annotator = DeterministicCorefAnnotator()
    document = annotator.annotate(Document("John Smith arrived. He left."))
    assert document.coref_chains is None
    assert document.coref_graph is None
    assert "[error]" in capsys.readouterr().err


def test_unset_parser_is_a_configuration_error(
    john_smith_document, fixed_finder_factory, finder_instances
):
    annotator = DeterministicCorefAnnotator(
        mention_finder_factory=fixed_finder_factory([[], []])
    )
    with pytest.raises(ConfigurationError):
        annotator.annotate(john_smith_document)
    # the document content was not examined
    assert all(token.utterance is None for token in _all_tokens(john_smith_document))
    assert len(finder_instances) == 0
    assert john_smith_document.coref_chains is None


def test_parser_can_only_be_set_once(fake_parser):
    annotator = DeterministicCorefAnnotator()
    annotator.set_parser_annotator(fake_parser)
    with pytest.raises(ConfigurationError):
        annotator.set_parser_annotator(fake_parser)


def test_old_format_is_disabled_by_default(john_smith_document, fake_parser):
    annotator = DeterministicCorefAnnotator(parser_annotator=fake_parser)
    document = annotator.annotate(john_smith_document)
    assert not document.coref_chains is None
    assert len(document.coref_chains) > 0
    assert document.coref_graph is None
    assert all(token.coref_cluster is None for token in _all_tokens(document))


def test_singleton_chains_have_no_cluster(
    john_smith_document, fake_parser, fixed_finder_factory, singletons_resolver
):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=singletons_resolver,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)]]),
    )
    document = annotator.annotate(john_smith_document)
    assert not document.coref_chains is None
    assert len(document.coref_chains) == 2
    assert document.coref_graph == []
    assert all(token.coref_cluster is None for token in _all_tokens(document))


def test_mentions_sharing_a_head_give_a_single_cluster_token(
    john_smith_document, fake_parser, fixed_finder_factory, single_chain_resolver
):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=single_chain_resolver,
        mention_finder_factory=fixed_finder_factory([[(1, 2, 1), (0, 2, 1)], []]),
    )
    document = annotator.annotate(john_smith_document)
    smith = document.sentences[0].tokens[1]
    assert smith.coref_cluster == frozenset({smith})
    assert document.coref_graph == [((1, 2), (1, 2))]


def test_speakers_enable_marked_discourse(make_sentence, fake_parser):
    document = Document(
        sentences=[
            make_sentence(
                "(ROOT (S (NP (NNP John) (NNP Smith)) (VP (VBD arrived)) (. .)))"
            ),
            make_sentence(
                "(ROOT (S (NP (PRP I)) (VP (VBD left)) (. .)))", speaker="John Smith"
            ),
            make_sentence("(ROOT (S (NP (PRP He)) (VP (VBD slept)) (. .)))"),
        ]
    )
    annotator = DeterministicCorefAnnotator(parser_annotator=fake_parser)
    document = annotator.annotate(document)

    assert document.use_marked_discourse
    assert not document.coref_chains is None
    assert len(document.coref_chains) == 1
    chain = list(document.coref_chains.values())[0]
    assert [" ".join(m.tokens) for m in chain.mentions] == ["John Smith", "I", "He"]


def test_no_speakers_no_marked_discourse(john_smith_document, fake_parser):
    annotator = DeterministicCorefAnnotator(parser_annotator=fake_parser)
    document = annotator.annotate(john_smith_document)
    assert not document.use_marked_discourse


def _john_smith_document(make_sentence) -> Document:
    return Document(
        sentences=[
            make_sentence(
                "(ROOT (S (NP (NNP John) (NNP Smith)) (VP (VBD met) (NP (NNP Mary))) (. .)))"
            ),
            make_sentence(
                "(ROOT (S (NP (PRP She)) (VP (VBD greeted) (NP (PRP him))) (. .)))"
            ),
            make_sentence(
                "(ROOT (S (NP (NNP Smith)) (VP (VBD left) (NP (PRP$ her) (NN house))) (. .)))"
            ),
        ]
    )


def test_annotation_is_deterministic(make_sentence, fake_parser):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True, parser_annotator=fake_parser
    )
    doc1 = annotator.annotate(_john_smith_document(make_sentence))
    doc2 = annotator.annotate(_john_smith_document(make_sentence))

    assert doc1.coref_chains == doc2.coref_chains
    assert doc1.coref_graph == doc2.coref_graph

    def clusters(document: Document):
        return [
            None
            if token.coref_cluster is None
            else sorted((t.text, t.index) for t in token.coref_cluster)
            for token in _all_tokens(document)
        ]

    assert clusters(doc1) == clusters(doc2)


# we suppress the `function_scoped_fixture` health check since
# fixtures used here are stateless.
@given(sentences_len=st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=4))
@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])
def test_links_are_one_based(
    sentences_len: List[int], fake_parser, single_chain_resolver
):
    sentences = [
        Sentence.from_words(
            [f"w{i}" for i in range(sent_len)],
            tree=Tree(
                "ROOT", [Tree("NN", [f"w{i}"]) for i in range(sent_len)]
            ),
        )
        for sent_len in sentences_len
    ]
    # one mention per token
    spans = [[(i, i + 1, i) for i in range(sent_len)] for sent_len in sentences_len]
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=single_chain_resolver,
        mention_finder_factory=lambda parser, allow_reparsing: _SpanFinder(spans),
    )
    document = annotator.annotate(Document(sentences=sentences))

    mentions_nb = sum(sentences_len)
    assert not document.coref_graph is None
    assert len(document.coref_graph) == mentions_nb * (mentions_nb - 1) // 2
    for link in document.coref_graph:
        for sent_i, token_i in link:
            assert 1 <= sent_i <= len(sentences)
            assert 1 <= token_i <= sentences_len[sent_i - 1]


class _SpanFinder:
    def __init__(self, spans) -> None:
        self.spans = spans

    def extract_predicted_mentions(self, document, max_id, dictionaries):
        return [
            [
                Mention(sentence.words()[s:e], s, e, h, sent_i)
                for s, e, h in sent_spans
            ]
            for sent_i, (sentence, sent_spans) in enumerate(
                zip(document.sentences, self.spans)
            )
        ]


def test_a_new_mention_finder_is_created_for_each_document(
    make_sentence, fake_parser, fixed_finder_factory, finder_instances
):
    annotator = DeterministicCorefAnnotator(
        parser_annotator=fake_parser,
        allow_reparsing=False,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)], []]),
    )
    annotator.annotate(_john_smith_document(make_sentence))
    annotator.annotate(_john_smith_document(make_sentence))

    assert len(finder_instances) == 2
    assert not finder_instances[0] is finder_instances[1]
    for finder in finder_instances:
        assert finder.calls == 1
        assert finder.parser is fake_parser
        assert finder.allow_reparsing is False


def test_invalid_mentions_are_processing_errors(
    john_smith_document, fake_parser, fixed_finder_factory
):
    annotator = DeterministicCorefAnnotator(
        parser_annotator=fake_parser,
        mention_finder_factory=fixed_finder_factory([[(0, 10, 1)], []]),
    )
    with pytest.raises(ProcessingError) as e:
        annotator.annotate(john_smith_document)
    assert isinstance(e.value.__cause__, ValueError)


def test_misaligned_tree_is_a_processing_error(fake_parser):
    sentence = Sentence.from_words(
        ["John", "left", "."], tree=Tree.fromstring("(ROOT (NP (NNP John)) (. .))")
    )
    annotator = DeterministicCorefAnnotator(parser_annotator=fake_parser)
    with pytest.raises(ProcessingError):
        annotator.annotate(Document(sentences=[sentence]))


def test_invalid_resolver_config_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        DeterministicCorefAnnotator(resolver_kwargs={"sieves": ["unknown_sieve"]})


def test_capabilities():
    annotator = DeterministicCorefAnnotator()
    assert annotator.needs() == {"tokenize", "ssplit", "pos", "ner", "parse"}
    assert annotator.production() == {"dcoref"}


def test_from_properties():
    annotator = DeterministicCorefAnnotator.from_properties(
        {
            "oldCorefFormat": "true",
            "dcoref.allowReparsing": "false",
            "dcoref.sieves": "exact_string_match, pronoun_match",
        }
    )
    assert annotator.old_coref_format
    assert not annotator.allow_reparsing
    assert annotator.resolver.sieves_names == ["exact_string_match", "pronoun_match"]

    default_annotator = DeterministicCorefAnnotator.from_properties({})
    assert not default_annotator.old_coref_format
    assert default_annotator.allow_reparsing


def test_from_properties_passes_dcoref_properties_to_the_resolver():
    annotator = DeterministicCorefAnnotator.from_properties(
        {
            "oldCorefFormat": "true",
            "dcoref.allowReparsing": "true",
            "dcoref.maxDist": "3",
            "dcoref.someUnknownOption": "value",
        }
    )
    assert annotator.resolver.props == {
        "dcoref.maxDist": "3",
        "dcoref.someUnknownOption": "value",
    }
    assert annotator.resolver.max_dist == 3


def test_invalid_resolver_property_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        DeterministicCorefAnnotator.from_properties({"dcoref.maxDist": "far"})


def test_signature_ignores_unrelated_properties():
    sig1 = DeterministicCorefAnnotator.signature(
        {"dcoref.sieves": "pronoun_match", "annotators": "tokenize"}
    )
    sig2 = DeterministicCorefAnnotator.signature({"dcoref.sieves": "pronoun_match"})
    assert sig1 == sig2
    assert sig1 != DeterministicCorefAnnotator.signature({})


def test_concurrent_annotation(make_sentence, fake_parser):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True, parser_annotator=fake_parser
    )
    expected = annotator.annotate(_john_smith_document(make_sentence))

    documents = [_john_smith_document(make_sentence) for _ in range(16)]
    with ThreadPoolExecutor(max_workers=4) as executor:
        annotated = list(executor.map(annotator.annotate, documents))

    for document in annotated:
        assert document.coref_chains == expected.coref_chains
        assert document.coref_graph == expected.coref_graph


def test_coref_graph_as_nx(
    john_smith_document, fake_parser, fixed_finder_factory, single_chain_resolver
):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=single_chain_resolver,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)]]),
    )
    G = annotator.annotate(john_smith_document).coref_graph_as_nx()
    assert G.nodes[(1, 2)]["word"] == "Smith"
    assert G.nodes[(2, 1)]["word"] == "He"
    assert G.has_edge((2, 1), (1, 2))


def test_legacy_output_does_not_survive_a_rerun_without_it(
    john_smith_document, fake_parser
):
    legacy_annotator = DeterministicCorefAnnotator(
        old_coref_format=True, parser_annotator=fake_parser
    )
    document = legacy_annotator.annotate(john_smith_document)
    assert document.coref_graph == [((2, 1), (1, 2))]

    DeterministicCorefAnnotator(parser_annotator=fake_parser).annotate(document)
    assert not document.coref_chains is None
    assert document.coref_graph is None
    assert all(token.coref_cluster is None for token in _all_tokens(document))


def test_stale_clusters_are_cleared_in_legacy_mode(
    john_smith_document, fake_parser, fixed_finder_factory, singletons_resolver
):
    document = DeterministicCorefAnnotator(
        old_coref_format=True, parser_annotator=fake_parser
    ).annotate(john_smith_document)
    assert not document.sentences[1].tokens[0].coref_cluster is None

    DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=singletons_resolver,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)]]),
    ).annotate(document)
    assert document.coref_graph == []
    assert all(token.coref_cluster is None for token in _all_tokens(document))


class _RecordingResolver(SieveCoreferenceResolver):
    """Keeps the last arranged document it resolved"""

    def coref(self, document):
        self.arranged = document
        return super().coref(document)


def test_reparsed_trees_are_given_to_the_resolver(fake_parser):
    sentence = Sentence.from_words(["the", "princess"], pos=["DT", "NN"])
    resolver = _RecordingResolver()
    annotator = DeterministicCorefAnnotator(
        allow_reparsing=True, parser_annotator=fake_parser, resolver=resolver
    )
    annotator.annotate(Document(sentences=[sentence]))

    assert fake_parser.parsed == [["the", "princess"]]
    assert not sentence.tree is None
    assert resolver.arranged.trees == [sentence.tree]
    assert resolver.arranged.trees[0].leaves() == sentence.tokens


def test_get_chain(john_smith_document, fake_parser):
    assert john_smith_document.get_chain(0) is None
    document = DeterministicCorefAnnotator(parser_annotator=fake_parser).annotate(
        john_smith_document
    )
    assert not document.coref_chains is None
    chain_id, chain = list(document.coref_chains.items())[0]
    assert document.get_chain(chain_id) is chain
    assert document.get_chain(chain_id + 1000) is None


def test_export_coref_graph_to_gexf(
    tmp_path,
    john_smith_document,
    fake_parser,
    fixed_finder_factory,
    single_chain_resolver,
):
    annotator = DeterministicCorefAnnotator(
        old_coref_format=True,
        parser_annotator=fake_parser,
        resolver=single_chain_resolver,
        mention_finder_factory=fixed_finder_factory([[(0, 2, 1)], [(0, 1, 0)]]),
    )
    document = annotator.annotate(john_smith_document)

    path = tmp_path / "coref.gexf"
    document.export_coref_graph_to_gexf(str(path))

    G = nx.read_gexf(str(path))
    assert set(G.nodes) == {"1-2", "2-1"}
    assert G.has_edge("2-1", "1-2")
    assert G.nodes["1-2"]["word"] == "Smith"
