"""Sieves used by :class:`.SieveCoreferenceResolver`.

A sieve decides whether a mention is coreferent with a candidate
antecedent appearing before it in the text.  Sieves are applied in
order of decreasing precision (Lee et al. 2013).
"""
from __future__ import annotations
from typing import Callable, Dict
from dcoref.pipeline.corefs.mentions import Mention
from dcoref.pipeline.corefs.dictionaries import Dictionaries
from dcoref.pipeline.corefs.arrangement import ArrangedDocument

#: ``(mention, antecedent, document, dictionaries) -> coreferent ?``
Sieve = Callable[[Mention, Mention, ArrangedDocument, Dictionaries], bool]


def _is_nested(mention: Mention, antecedent: Mention) -> bool:
    """i-within-i constraint: a mention can't corefer with a mention
    containing it, or contained in it."""
    if mention.sent_num != antecedent.sent_num:
        return False
    return (
        antecedent.start_idx <= mention.start_idx
        and mention.end_idx <= antecedent.end_idx
    ) or (
        mention.start_idx <= antecedent.start_idx
        and antecedent.end_idx <= mention.end_idx
    )


def _agree(a: str, b: str) -> bool:
    return a == "UNKNOWN" or b == "UNKNOWN" or a == b


def speaker_match(
    mention: Mention,
    antecedent: Mention,
    document: ArrangedDocument,
    dictionaries: Dictionaries,
) -> bool:
    """First person singular pronouns of the same speaker are
    coreferent, and corefer with the speaker name itself.  Only
    active in marked discourse mode."""
    if not document.use_marked_discourse or mention.speaker is None:
        return False
    if not (mention.person == 1 and mention.number == "SINGULAR"):
        return False
    if antecedent.person == 1 and antecedent.number == "SINGULAR":
        return antecedent.speaker == mention.speaker
    return (
        antecedent.mention_type == "PROPER"
        and antecedent.span_str().lower() == mention.speaker.lower()
    )


def exact_string_match(
    mention: Mention,
    antecedent: Mention,
    document: ArrangedDocument,
    dictionaries: Dictionaries,
) -> bool:
    if "PRONOMINAL" in (mention.mention_type, antecedent.mention_type):
        return False
    if _is_nested(mention, antecedent):
        return False
    return mention.span_str().lower() == antecedent.span_str().lower()


def strict_head_match(
    mention: Mention,
    antecedent: Mention,
    document: ArrangedDocument,
    dictionaries: Dictionaries,
) -> bool:
    if "PRONOMINAL" in (mention.mention_type, antecedent.mention_type):
        return False
    if _is_nested(mention, antecedent):
        return False
    if not _agree(mention.number, antecedent.number):
        return False
    return mention.head_word.lower() == antecedent.head_word.lower()


#: maximum sentence distance between a pronoun and its antecedent
PRONOUN_MAX_SENTENCE_DISTANCE = 3


def pronoun_match(
    mention: Mention,
    antecedent: Mention,
    document: ArrangedDocument,
    dictionaries: Dictionaries,
) -> bool:
    """Link a pronoun to the closest agreeing antecedent."""
    if mention.mention_type != "PRONOMINAL":
        return False
    if mention.sent_num - antecedent.sent_num > PRONOUN_MAX_SENTENCE_DISTANCE:
        return False
    if _is_nested(mention, antecedent):
        return False
    if not _agree(mention.gender, antecedent.gender):
        return False
    if not _agree(mention.number, antecedent.number):
        return False
    if mention.person in (1, 2):
        return antecedent.person == mention.person and (
            mention.speaker == antecedent.speaker
        )
    return antecedent.person in (0, 3)


SIEVES: Dict[str, Sieve] = {
    "speaker_match": speaker_match,
    "exact_string_match": exact_string_match,
    "strict_head_match": strict_head_match,
    "pronoun_match": pronoun_match,
}
