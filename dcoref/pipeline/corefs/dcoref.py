from __future__ import annotations
from typing import Any, Callable, Dict, List, Literal, Optional, Set, Tuple, Union
import sys
from dcoref.pipeline.core import (
    PipelineStep,
    Document,
    Sentence,
    Token,
    CorefLink,
    ConfigurationError,
    ProcessingError,
    TOKENIZE_REQUIREMENT,
    SSPLIT_REQUIREMENT,
    POS_REQUIREMENT,
    NER_REQUIREMENT,
    PARSE_REQUIREMENT,
    DETERMINISTIC_COREF_REQUIREMENT,
)
from dcoref.pipeline.corefs.mentions import CorefChain, Mention
from dcoref.pipeline.corefs.arrangement import (
    MentionArranger,
    merge_labels,
    initialize_utterance,
)
from dcoref.pipeline.corefs.mention_finder import (
    MentionFinder,
    ParserAnnotator,
    RuleBasedMentionFinder,
)
from dcoref.pipeline.corefs.resolver import (
    CoreferenceResolver,
    SieveCoreferenceResolver,
    get_links,
)

#: default value for the ``allow_reparsing`` parameter of
#: :class:`DeterministicCorefAnnotator`
ALLOW_REPARSING = True
ALLOW_REPARSING_PROP = "dcoref.allowReparsing"
OLD_FORMAT_PROP = "oldCorefFormat"

#: ``(parser, allow_reparsing) -> mention finder``
MentionFinderFactory = Callable[[ParserAnnotator, bool], MentionFinder]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _one_based(sent_i: int, token_i: int) -> Tuple[int, int]:
    """Convert a ``(sentence, token)`` coordinate to the convention of
    coreference graphs, where indices start at 1 as for syntactic
    dependencies."""
    return (sent_i + 1, token_i + 1)


def _at(seq: list, i: int) -> Any:
    # negative indices must not silently wrap around
    if i < 0:
        raise IndexError(f"negative index: {i}")
    return seq[i]


def coref_graph(
    chains: Dict[int, CorefChain], ordered_mentions: List[List[Mention]]
) -> List[CorefLink]:
    """Compute the coreference links between mention heads

    :param chains: coreference chains
    :param ordered_mentions: the arranged mentions of each sentence,
        as used by the resolver.

    :return: a list of ``((sentence, head), (sentence, head))`` links,
             with indices starting at 1.
    """
    graph = []
    for (src_sent, src_mention), (dst_sent, dst_mention) in get_links(chains):
        src_head = _at(_at(ordered_mentions, src_sent), src_mention).head_idx
        dst_head = _at(_at(ordered_mentions, dst_sent), dst_mention).head_idx
        graph.append((_one_based(src_sent, src_head), _one_based(dst_sent, dst_head)))
    return graph


def annotate_coref_clusters(
    chains: Dict[int, CorefChain], sentences: List[List[Token]]
):
    """Attach, to the head token of each mention of a chain, the set
    of head tokens of that chain.  Chains with a single mention are
    ignored.
    """
    for chain in chains.values():
        if len(chain.mentions) < 2:
            continue
        coreferent_tokens = frozenset(
            _at(_at(sentences, mention.sent_num), mention.head_idx)
            for mention in chain.mentions
        )
        for token in coreferent_tokens:
            token.coref_cluster = coreferent_tokens


class DeterministicCorefAnnotator(PipelineStep):
    """A sieve-based coreference annotator.

    Mentions are extracted from parsed sentences, then partitioned
    into chains by a :class:`.CoreferenceResolver`.  Chains are stored
    in ``coref_chains``.  When ``old_coref_format`` is ``True``,
    coreference links between mention heads are also stored in
    ``coref_graph``, and each head token of a chain gets the set of
    all head tokens of its chain in ``Token.coref_cluster``.

    .. note::

        A parser annotator must be given, either at construction time
        or using :meth:`set_parser_annotator`, before annotating
        anything.

    .. note::

        An annotator can annotate several documents concurrently.  In
        that case, progress reports of concurrent calls are mixed
        together, since they share the same ``progress_reporter``.
        Annotation results are not affected.
    """

    def __init__(
        self,
        old_coref_format: bool = False,
        allow_reparsing: bool = ALLOW_REPARSING,
        parser_annotator: Optional[ParserAnnotator] = None,
        resolver: Optional[CoreferenceResolver] = None,
        resolver_kwargs: Optional[Dict[str, Any]] = None,
        mention_finder_factory: MentionFinderFactory = RuleBasedMentionFinder,
        verbose: bool = False,
    ) -> None:
        """
        :param old_coref_format: if ``True``, also output coreference
            in the legacy format (``coref_graph`` and
            ``Token.coref_cluster``)
        :param allow_reparsing: whether the mention finder can parse
            sentences that have no tree
        :param parser_annotator: parser used by the mention finder
        :param resolver: a custom coreference resolver.  If ``None``,
            a :class:`.SieveCoreferenceResolver` is created using
            ``resolver_kwargs``.
        :param resolver_kwargs: kwargs for
            :class:`.SieveCoreferenceResolver`
        :param mention_finder_factory: called once per annotated
            document to create a new mention finder
        :param verbose: if ``True``, print found mentions and links
        """
        try:
            self.resolver = resolver or SieveCoreferenceResolver(
                **(resolver_kwargs or {})
            )
            self.mention_arranger = MentionArranger(self.resolver.dictionaries)
        except Exception as e:
            raise ConfigurationError(
                f"cannot create {self.__class__.__name__}: {e}"
            ) from e

        self.old_coref_format = old_coref_format
        self.allow_reparsing = allow_reparsing
        self.mention_finder_factory = mention_finder_factory
        self.verbose = verbose

        self.parser_annotator: Optional[ParserAnnotator] = None
        if not parser_annotator is None:
            self.set_parser_annotator(parser_annotator)

        super().__init__()

    @staticmethod
    def from_properties(
        props: Dict[str, str], **kwargs
    ) -> DeterministicCorefAnnotator:
        """Create an annotator from string properties.

        ``oldCorefFormat`` and ``dcoref.allowReparsing`` configure the
        annotator.  All other ``dcoref.*`` properties are passed
        unmodified to the resolver (see
        :class:`.SieveCoreferenceResolver`).

        :param kwargs: passed to :class:`DeterministicCorefAnnotator`
        """
        resolver_props = {
            key: value
            for key, value in props.items()
            if key.startswith("dcoref.") and key != ALLOW_REPARSING_PROP
        }
        return DeterministicCorefAnnotator(
            old_coref_format=_parse_bool(props.get(OLD_FORMAT_PROP, "false")),
            allow_reparsing=_parse_bool(
                props.get(ALLOW_REPARSING_PROP, str(ALLOW_REPARSING))
            ),
            resolver_kwargs={"props": resolver_props},
            **kwargs,
        )

    @staticmethod
    def signature(props: Dict[str, str]) -> str:
        return SieveCoreferenceResolver.signature(props)

    def set_parser_annotator(self, parser_annotator: ParserAnnotator):
        """Set the parser used by mention finders.  Can only be called
        once."""
        if not self.parser_annotator is None:
            raise ConfigurationError(
                f"{self.__class__.__name__} parser annotator is already set"
            )
        self.parser_annotator = parser_annotator

    def __call__(
        self,
        sentences: Optional[List[Sentence]] = None,
        text: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        :param sentences: parsed sentences.  If ``None``, nothing is
            annotated.
        :param text:
        :param use_marked_discourse: set ``True`` if speakers are
            already known to be annotated.
        """
        if sentences is None:
            print(
                f"[error] {self.__class__.__name__} requires sentences: the document was not annotated.",
                file=sys.stderr,
            )
            return {}

        if self.parser_annotator is None:
            raise ConfigurationError(
                f"{self.__class__.__name__} parser annotator was never set"
            )

        document = Document(
            text,
            sentences,
            use_marked_discourse=kwargs.get("use_marked_discourse", False),
        )
        try:
            return self._annotate(document)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ProcessingError(f"coreference annotation failed: {e}") from e

    def _annotate(self, document: Document) -> Dict[str, Any]:
        assert not document.sentences is None
        assert not self.parser_annotator is None

        trees = []
        sentences = []
        has_speaker_annotations = False
        for sentence in self._progress_(document.sentences):
            sentences.append(sentence.tokens)
            trees.append(sentence.tree)
            if not has_speaker_annotations:
                has_speaker_annotations = any(
                    not token.speaker is None for token in sentence.tokens
                )
            if not sentence.tree is None:
                merge_labels(sentence.tree, sentence.tokens)
            initialize_utterance(sentence.tokens)

        if has_speaker_annotations:
            document.use_marked_discourse = True

        # mention finders are not thread-safe: a new one is created
        # for each document
        finder = self.mention_finder_factory(
            self.parser_annotator, self.allow_reparsing
        )
        unordered_mentions = finder.extract_predicted_mentions(
            document, 0, self.resolver.dictionaries
        )
        # the mention finder may have reparsed sentences without a tree
        trees = [sentence.tree for sentence in document.sentences]

        arranged = self.mention_arranger.arrange(
            document, sentences, trees, unordered_mentions
        )
        if self.verbose:
            for sent_i, mentions in enumerate(arranged.ordered_mentions):
                print(f"[debug] mentions in sentence #{sent_i}:", file=sys.stderr)
                for mention_i, mention in enumerate(mentions):
                    print(
                        f"[debug] \tmention #{mention_i}: {mention.span_str()}",
                        file=sys.stderr,
                    )

        chains = self.resolver.coref(arranged)
        out: Dict[str, Any] = {"coref_chains": chains}
        if has_speaker_annotations:
            out["use_marked_discourse"] = True

        # clusters from a previous annotation must not survive
        for tokens in sentences:
            for token in tokens:
                token.coref_cluster = None

        if self.old_coref_format:
            graph = coref_graph(chains, arranged.ordered_mentions)
            if self.verbose:
                print(f"[debug] found {len(graph)} coreference links:", file=sys.stderr)
                for src, dst in graph:
                    print(f"[debug] \tLINK {src} -> {dst}", file=sys.stderr)
            out["coref_graph"] = graph
            annotate_coref_clusters(chains, sentences)
        else:
            out["coref_graph"] = None

        return out

    def supported_langs(self) -> Union[Set[str], Literal["any"]]:
        return {"eng"}

    def needs(self) -> Set[str]:
        """tokenize, ssplit, pos, ner, parse"""
        return {
            TOKENIZE_REQUIREMENT,
            SSPLIT_REQUIREMENT,
            POS_REQUIREMENT,
            NER_REQUIREMENT,
            PARSE_REQUIREMENT,
        }

    def production(self) -> Set[str]:
        """dcoref"""
        return {DETERMINISTIC_COREF_REQUIREMENT}
