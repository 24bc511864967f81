from dcoref.pipeline.core import (
    Pipeline,
    PipelineStep,
    Document,
    Sentence,
    Token,
    ConfigurationError,
    ProcessingError,
)
from dcoref.pipeline.progress import ProgressReporter
