"""Embedding progress observer that reports through the colored pipeline logger."""

from knowledge_pipeline.application.interfaces.progress_observer import EmbeddingProgressObserver
from knowledge_pipeline.domain.entities import ChunkFailure, KnowledgebaseFile
from knowledge_pipeline.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

# Log a progress line every this many completed chunks (and on the last one).
_PROGRESS_EVERY = 100


class LoggingProgressObserver(EmbeddingProgressObserver):
    """Operator-facing progress reporting for document embedding runs."""

    def __init__(self, every: int = _PROGRESS_EVERY):
        self._log = PipelineLogger("EmbeddingPipeline")
        self._every = max(1, every)

    def on_start(self, file: KnowledgebaseFile, total: int) -> None:
        self._log.step_start(PipelineStage.BATCH, f"Embedding {file.name}", chunks=total)

    def on_progress(self, file: KnowledgebaseFile, completed: int, total: int) -> None:
        if completed % self._every == 0 or completed == total:
            self._log.detail(f"{completed}/{total} chunks processed", file=file.name)

    def on_failure(self, file: KnowledgebaseFile, failure: ChunkFailure) -> None:
        kind = "timed out" if failure.timed_out else "failed"
        self._log.step_warning(
            PipelineStage.BATCH,
            f"Chunk {failure.index + 1} {kind}",
            file=file.name,
            reason=failure.reason,
        )

    def on_finish(self, file: KnowledgebaseFile, succeeded: int, failed: int) -> None:
        if failed:
            self._log.step_warning(
                PipelineStage.BATCH,
                f"Embedded {file.name} with chunk losses",
                succeeded=succeeded,
                failed=failed,
            )
        else:
            self._log.step_complete(PipelineStage.BATCH, f"Embedded {file.name}", succeeded=succeeded)
