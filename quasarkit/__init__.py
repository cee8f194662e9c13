"""quasarkit -- metadata-driven orchestration for the Quasar starter kit.

Three pieces make up a generation run:

* the prompt schema (``quasarkit.schema``) describes the questions and the
  ``when`` predicates that hide them;
* the filter engine (``quasarkit.filters``) decides which template files are
  copied for a given set of answers;
* the post-generation pipeline (``quasarkit.complete``) sorts the manifest,
  optionally installs dependencies and runs the lint fix, then prints the
  closing instructions.

Quick usage::

    from quasarkit import AnswerStore, Config, PostGenerationPipeline, load_metadata

    meta = load_metadata()
    answers = AnswerStore.from_raw(meta.prompts, raw_answers)
    kept = meta.filter_engine().select(template_paths, answers)
    result = await PostGenerationPipeline(Config(dest_dir_name="my-app"), answers).run()
"""

from quasarkit.complete import Collaborators, PostGenerationPipeline, PipelineResult
from quasarkit.config import Config
from quasarkit.filters import FilterEngine, FilterRule
from quasarkit.metadata import TemplateMetadata, load_metadata
from quasarkit.schema import AnswerStore, PromptSchema, Question

__version__ = "1.0.0"

__all__ = [
    "AnswerStore",
    "Collaborators",
    "Config",
    "FilterEngine",
    "FilterRule",
    "PipelineResult",
    "PostGenerationPipeline",
    "PromptSchema",
    "Question",
    "TemplateMetadata",
    "load_metadata",
]
