from .mentions import Mention, CorefMention, CorefChain
from .dictionaries import Dictionaries
from .arrangement import (
    ArrangedDocument,
    MentionArranger,
    merge_labels,
    initialize_utterance,
)
from .mention_finder import ParserAnnotator, MentionFinder, RuleBasedMentionFinder
from .resolver import CoreferenceResolver, SieveCoreferenceResolver, get_links
from .dcoref import DeterministicCorefAnnotator, ALLOW_REPARSING
