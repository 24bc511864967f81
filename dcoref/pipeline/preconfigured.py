from typing import Optional
from dcoref.pipeline.core import Pipeline


def dcoref_pipeline(
    parser_kwargs: Optional[dict] = None,
    annotator_kwargs: Optional[dict] = None,
    **pipeline_kwargs,
) -> Pipeline:
    """Return a pre-configured coreference pipeline, going from raw
    text to coreference chains.

    The stanza parser of the pipeline is also used as the parser
    annotator of the coreference annotator.

    :param parser_kwargs: kwargs for :class:`.StanzaParser`
    :param annotator_kwargs: kwargs for
        :class:`.DeterministicCorefAnnotator`
    :param pipeline_kwargs: kwargs for :class:`.Pipeline`
    """
    from dcoref.pipeline.stanza_parser import StanzaParser
    from dcoref.pipeline.corefs import DeterministicCorefAnnotator

    parser_kwargs = parser_kwargs or {}
    annotator_kwargs = annotator_kwargs or {}

    parser = StanzaParser(**parser_kwargs)
    return Pipeline(
        [
            parser,
            DeterministicCorefAnnotator(parser_annotator=parser, **annotator_kwargs),
        ],
        **pipeline_kwargs,
    )
