from typing import Any, Dict, List, Literal, Optional, Set, Union
import threading
import stanza
from nltk.tree import Tree
from dcoref.pipeline.core import (
    PipelineStep,
    Sentence,
    Token,
    TOKENIZE_REQUIREMENT,
    SSPLIT_REQUIREMENT,
    POS_REQUIREMENT,
    NER_REQUIREMENT,
    PARSE_REQUIREMENT,
)
from dcoref.pipeline.corefs.mention_finder import ParserAnnotator

#: ISO 639-3 language string correspondance with stanza language string
STANZA_ISO_STRING_TO_LANG = {"eng": "en"}


def stanza_bio_tags(bioes_tags: List[str]) -> List[str]:
    """Convert stanza BIOES NER tags to BIO tags, as in
    ``['B-PER', 'E-PER', 'S-LOC', 'O'] => ['B-PER', 'I-PER', 'B-LOC', 'O']``
    """
    bio_tags = []
    for tag in bioes_tags:
        if tag.startswith("S-"):
            bio_tags.append("B-" + tag[2:])
        elif tag.startswith("E-"):
            bio_tags.append("I-" + tag[2:])
        else:
            bio_tags.append(tag)
    return bio_tags


class StanzaParser(PipelineStep, ParserAnnotator):
    """Tokenization, sentence splitting, POS tagging, NER and
    constituency parsing using stanza.

    This step can also be used as the parser annotator of a
    :class:`.DeterministicCorefAnnotator`.

    .. note::

        This step requires the ``stanza`` library.  You can install
        it using ``pip install dcoref[stanza]``.
    """

    def __init__(self, use_gpu: bool = False, **stanza_kwargs) -> None:
        """
        :param use_gpu: passed to ``stanza.Pipeline``
        :param stanza_kwargs: extra args for ``stanza.Pipeline``.
            ``processors``, ``lang`` and ``tokenize_pretokenized`` are
            *not* supported.
        """
        self.use_gpu = use_gpu
        self.stanza_kwargs = stanza_kwargs
        self.nlp: Optional[stanza.Pipeline] = None
        self.pretokenized_nlp: Optional[stanza.Pipeline] = None
        # stanza pipelines are not thread-safe, while a parser
        # annotator can be shared by several documents
        self._lock = threading.Lock()
        super().__init__()

    def _pipeline_init_(self, lang: str, **kwargs):
        super()._pipeline_init_(lang, **kwargs)
        self._load_()

    def _load_(self):
        with self._lock:
            if not self.nlp is None:
                return
            stanza_lang = STANZA_ISO_STRING_TO_LANG[self.lang]
            self.nlp = stanza.Pipeline(
                stanza_lang,
                processors="tokenize,pos,ner,constituency",
                use_gpu=self.use_gpu,
                verbose=False,
                **self.stanza_kwargs,
            )
            self.pretokenized_nlp = stanza.Pipeline(
                stanza_lang,
                processors="tokenize,pos,constituency",
                tokenize_pretokenized=True,
                use_gpu=self.use_gpu,
                verbose=False,
                **self.stanza_kwargs,
            )

    def __call__(self, text: str, **kwargs) -> Dict[str, Any]:
        self._load_()
        assert not self.nlp is None

        with self._lock:
            doc = self.nlp(text)

        sentences = []
        for sent in doc.sentences:
            sentences.append(
                Sentence.from_words(
                    [word.text for word in sent.words],
                    pos=[word.xpos for word in sent.words],
                    ner=stanza_bio_tags([word.parent.ner for word in sent.words]),
                    tree=Tree.fromstring(str(sent.constituency)),
                )
            )

        return {"sentences": sentences}

    def parse(self, tokens: List[Token]) -> Tree:
        self._load_()
        assert not self.pretokenized_nlp is None

        with self._lock:
            doc = self.pretokenized_nlp([[token.text for token in tokens]])
        return Tree.fromstring(str(doc.sentences[0].constituency))

    def supported_langs(self) -> Union[Set[str], Literal["any"]]:
        return set(STANZA_ISO_STRING_TO_LANG.keys())

    def needs(self) -> Set[str]:
        return set()

    def production(self) -> Set[str]:
        return {
            TOKENIZE_REQUIREMENT,
            SSPLIT_REQUIREMENT,
            POS_REQUIREMENT,
            NER_REQUIREMENT,
            PARSE_REQUIREMENT,
        }
