from __future__ import annotations
from dataclasses import dataclass, field
from typing import (
    Any,
    Dict,
    FrozenSet,
    Generator,
    Literal,
    Iterable,
    Tuple,
    Set,
    List,
    Optional,
    Union,
    TypeVar,
    Type,
    TYPE_CHECKING,
)
import os, sys

import networkx as nx
from nltk.tree import Tree

from dcoref.pipeline.progress import ProgressReporter, get_progress_reporter, progress_

if TYPE_CHECKING:
    from dcoref.pipeline.corefs.mentions import CorefChain


#: capabilities exchanged between pipeline steps
TOKENIZE_REQUIREMENT = "tokenize"
SSPLIT_REQUIREMENT = "ssplit"
POS_REQUIREMENT = "pos"
NER_REQUIREMENT = "ner"
PARSE_REQUIREMENT = "parse"
DETERMINISTIC_COREF_REQUIREMENT = "dcoref"


class ConfigurationError(RuntimeError):
    """A step is not correctly set up.  The step can't be used until
    it is reconfigured."""

    pass


class ProcessingError(RuntimeError):
    """Processing a document failed.  Annotations already attached to
    that document should be discarded."""

    pass


@dataclass(eq=False)
class Token:
    """A token of a sentence.

    .. note::

        Tokens are compared and hashed by identity: two tokens with
        the same text at the same position in two different sentences
        are different tokens.
    """

    text: str
    #: index of the token in its sentence, starting at 0
    index: int
    pos: Optional[str] = None
    #: NER tag, either a BIO tag ('B-PER') or a bare entity type
    ner: Optional[str] = None
    #: speaker of the utterance containing this token, if known
    speaker: Optional[str] = None
    utterance: Optional[int] = None
    #: set of tokens coreferent with this token (legacy format only)
    coref_cluster: Optional[FrozenSet[Token]] = field(default=None, repr=False)

    def __str__(self) -> str:
        return self.text


@dataclass
class Sentence:
    tokens: List[Token]
    #: constituency tree.  Once labels are merged, its leaves are
    #: ``tokens``.
    tree: Optional[Tree] = None

    @staticmethod
    def from_words(
        words: List[str],
        pos: Optional[List[str]] = None,
        ner: Optional[List[str]] = None,
        tree: Optional[Tree] = None,
    ) -> Sentence:
        """Create a sentence from a list of words and optional
        parallel annotations.
        """
        tokens = []
        for i, word in enumerate(words):
            tokens.append(
                Token(
                    word,
                    i,
                    pos=None if pos is None else pos[i],
                    ner=None if ner is None else ner[i],
                )
            )
        return Sentence(tokens, tree)

    def words(self) -> List[str]:
        return [token.text for token in self.tokens]


#: a coreference link between two ``(sentence, token)`` coordinates.
#: In :attr:`Document.coref_graph`, coordinates start at 1.
CorefLink = Tuple[Tuple[int, int], Tuple[int, int]]


@dataclass
class Document:
    """A document, annotated in a :class:`Pipeline` lifetime"""

    #: input text
    text: Optional[str] = None

    #: sentences of the document.  ``None`` when the document has no
    #: sentence structure.
    sentences: Optional[List[Sentence]] = None

    #: ``True`` if speaker information was found in the document
    use_marked_discourse: bool = False

    #: coreference chains, by chain id
    coref_chains: Optional[Dict[int, CorefChain]] = None

    #: coreference links between mention heads (legacy format).
    #: Indices start at 1, as for syntactic dependencies.
    coref_graph: Optional[List[CorefLink]] = None

    def get_chain(self, chain_id: int) -> Optional[CorefChain]:
        """
        :return: the coreference chain with the given id, or ``None``
                 if no such chain exists.
        """
        if self.coref_chains is None:
            return None
        return self.coref_chains.get(chain_id)

    def coref_graph_as_nx(self) -> nx.DiGraph:
        """Convert ``self.coref_graph`` into a directed graph.

        Nodes are ``(sentence, token)`` tuples (starting at 1), and
        each node has a ``word`` attribute.  Each link is an edge from
        the coreferent mention head to its antecedent head.
        """
        assert not self.coref_graph is None
        assert not self.sentences is None

        G = nx.DiGraph()
        for src, dst in self.coref_graph:
            for sent_i, token_i in (src, dst):
                word = self.sentences[sent_i - 1].tokens[token_i - 1].text
                G.add_node((sent_i, token_i), word=word)
            G.add_edge(src, dst)
        return G

    def export_coref_graph_to_gexf(self, path: str):
        """Export ``self.coref_graph`` to Gephi's gexf format

        :param path: export file path
        """
        path = os.path.expanduser(path)
        G = self.coref_graph_as_nx()
        # gexf does not support tuples as node ids
        G = nx.relabel_nodes(G, {node: f"{node[0]}-{node[1]}" for node in G.nodes})
        nx.write_gexf(G, path)


class PipelineStep:
    """An abstract pipeline step

    .. note::

        The ``__call__``, ``needs`` and ``production`` methods _must_ be
        overridden by derived classes.

    .. note::

        The ``optional_needs`` and ``supported_langs`` methods can be
        overridden by derived classes.
    """

    def __init__(self):
        """Initialize the :class:`PipelineStep` with a given configuration."""
        self.lang = "eng"
        self.progress_reporter = get_progress_reporter(None)

    def _pipeline_init_(
        self, lang: str, progress_reporter: ProgressReporter, **kwargs
    ) -> Optional[Dict[Pipeline.PipelineParameter, Any]]:
        """Set the step configuration that is common to the whole
        pipeline.

        :param lang: the lang of the whole pipeline
        :param progress_reporter:
        :param kwargs: additional pipeline parameters.

        :return: a step can return a dictionary of pipeline params if
                 it wish to modify some of these.
        """
        supported_langs = self.supported_langs()
        if not supported_langs == "any" and not lang in supported_langs:
            raise ValueError(
                f"[error] {self.__class__} does not support lang {lang} (supported language: {supported_langs})."
            )
        self.lang = lang

        self.progress_reporter = progress_reporter

    T = TypeVar("T")

    def _progress_(
        self, it: Iterable[T], total: Optional[int] = None
    ) -> Generator[T, None, None]:
        for elt in progress_(self.progress_reporter, it, total):
            yield elt

    def __call__(self, **kwargs) -> Dict[str, Any]:
        raise NotImplementedError()

    def annotate(self, document: Document) -> Document:
        """Run this step alone on ``document``, setting its production
        as attributes of ``document``.

        :return: ``document``
        """
        out = self(**document.__dict__)
        for key, value in out.items():
            setattr(document, key, value)
        return document

    def supported_langs(self) -> Union[Set[str], Literal["any"]]:
        """
        :return: a list of supported languages, as ISO 639-3 codes, or
                 the string ``'any'``
        """
        return {"eng"}

    def needs(self) -> Set[str]:
        """
        :return: a `set` of capabilities needed by this
            :class:`PipelineStep`. This method must be overriden
            by derived classes.
        """
        raise NotImplementedError()

    def optional_needs(self) -> Set[str]:
        """
        :return: a `set` of capabilities optionally neeeded by this
            :class:`PipelineStep`. This method can be overriden by derived
            classes.
        """
        return set()

    def production(self) -> Set[str]:
        """
        :return: a `set` of capabilities satisfied by this
            :class:`PipelineStep`. This method must be overriden
            by derived classes.
        """
        raise NotImplementedError()


class Pipeline:
    """A sequential NLP pipeline"""

    #: all the possible parameters of the whole pipeline, that are
    #: shared between steps
    PipelineParameter = Literal["lang", "progress_reporter"]

    def __init__(
        self,
        steps: List[PipelineStep],
        lang: str = "eng",
        progress_report: Optional[Literal["tqdm"]] = "tqdm",
        warn: bool = True,
    ) -> None:
        """
        :param steps: a ``list`` of :class:``PipelineStep``, that
            will be executed in order
        :param lang: ISO 639-3 language code
        :param progress_report: if ``tqdm``, report the pipeline
            progress using tqdm.  if ``None``, does not report
            progress.
        :param warn: if ``True``, print warnings about unsatisfied
            optional needs
        """
        self.steps = steps

        self.progress_report: Optional[Literal["tqdm"]] = progress_report
        self.progress_reporter = get_progress_reporter(progress_report)

        self.lang = lang
        self.warn = warn

    def _pipeline_init_steps_(self, ignored_steps: Optional[List[str]] = None):
        """Initialise steps with global pipeline parameters.

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.
        """
        steps_progress_reporter = self.progress_reporter.get_subreporter()
        pipeline_params = {"progress_reporter": steps_progress_reporter}
        for step in self._non_ignored_steps(ignored_steps):
            step_additional_params = step._pipeline_init_(self.lang, **pipeline_params)
            if not step_additional_params is None:
                for key, value in step_additional_params.items():
                    setattr(self, key, value)
                    pipeline_params[key] = value

    def _non_ignored_steps(
        self, ignored_steps: Optional[List[str]]
    ) -> List[PipelineStep]:
        """Get steps that are not ignored.

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` wont be returned.
        """
        if ignored_steps is None:
            return self.steps
        return [
            s
            for s in self.steps
            if not any([p in s.production() for p in ignored_steps])
        ]

    def check_valid(
        self, *args, ignored_steps: Optional[List[str]] = None
    ) -> Tuple[bool, List[str]]:
        """Check that the current pipeline can be run, which is
        possible if all steps needs are satisfied

        :param args: capabilities already satisfied by the input
            document (for example ``'tokenize'`` when the document is
            given already tokenized)
        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: a tuple : ``(True, [warnings])`` if the pipeline is
                 valid, ``(False, [errors])`` otherwise
        """
        satisfied = set(args)
        warnings = []

        for i, step in enumerate(self._non_ignored_steps(ignored_steps)):
            if not step.needs().issubset(satisfied):
                return (
                    False,
                    [
                        f"step {i + 1} ({step.__class__.__name__}) has unsatisfied needs. "
                        + f"needs: {step.needs()}. "
                        + f"available: {satisfied}. "
                        + f"missing: {step.needs() - satisfied}."
                    ],
                )

            if not step.optional_needs().issubset(satisfied):
                warnings.append(
                    f"step {i + 1} ({step.__class__.__name__}) has unsatisfied optional needs. "
                    + f"needs: {step.optional_needs()}. "
                    + f"available: {satisfied}. "
                    + f"missing: {step.optional_needs() - satisfied}."
                )

            satisfied = satisfied.union(step.production())

        return (True, warnings)

    def _run_steps(self, document: Document, steps: List[PipelineStep]) -> Document:
        for step in progress_(self.progress_reporter, steps):
            self.progress_reporter.update_message_(f"{step.__class__.__name__}")
            step.annotate(document)
        return document

    def __call__(
        self,
        text: Optional[str] = None,
        document: Optional[Document] = None,
        satisfied: Optional[Set[str]] = None,
        ignored_steps: Optional[List[str]] = None,
    ) -> Document:
        """Run the pipeline sequentially.

        :param text: raw input text.  Ignored if ``document`` is given.
        :param document: an already (partially) annotated document.
        :param satisfied: capabilities already satisfied by
            ``document``.
        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: the annotated document
        """
        satisfied = satisfied or set()
        is_valid, warnings_or_errors = self.check_valid(
            *satisfied, ignored_steps=ignored_steps
        )
        if not is_valid:
            raise ValueError(warnings_or_errors)
        if self.warn:
            for warning in warnings_or_errors:
                print(f"[warning] : {warning}", file=sys.stderr)

        self._pipeline_init_steps_(ignored_steps)

        if document is None:
            document = Document(text)

        return self._run_steps(document, self._non_ignored_steps(ignored_steps))

    def rerun_from(
        self,
        document: Document,
        from_step: Union[str, Type[PipelineStep]],
        ignored_steps: Optional[List[str]] = None,
    ) -> Document:
        """Recompute steps, starting from ``from_step`` (included).
        Previous steps results are not recomputed.

        .. note::

            steps are not re-inited using :func:`._pipeline_init_steps`.

        :param document: the previously annotated document

        :param from_step: first step to recompute from.  Either :

                - ``str`` : in that case, the name of a step
                  production (``'parse'``, ``'dcoref'``...)

                - ``Type[PipelineStep]`` : in that case, the class of
                  a step

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: the annotated document
        """
        steps = self._non_ignored_steps(ignored_steps)

        from_step_i = None
        for step_i, step in enumerate(steps):
            if step.__class__ == from_step or from_step in step.production():
                from_step_i = step_i
                break
        assert not from_step_i is None

        return self._run_steps(document, steps[from_step_i:])
