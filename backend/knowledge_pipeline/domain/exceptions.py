"""Domain-specific exceptions — framework-independent."""


class PipelineError(Exception):
    """Base class for every error raised by the retrieval pipeline."""


class RetrievalValidationError(PipelineError):
    """Raised when required input is missing or invalid.

    Surfaced to the caller as a client error; never retried.
    """


class EmbeddingTimeoutError(PipelineError):
    """Raised when a single embedding call exceeds its deadline.

    Distinct from ProviderError: the provider never answered.
    """

    def __init__(self, label: str, timeout: float):
        self.label = label
        self.timeout = timeout
        super().__init__(f"Embedding request for {label} timed out after {timeout:g}s")


class ProviderError(PipelineError):
    """Raised when an external collaborator (embedding, vector store, reranker) fails.

    Provider-agnostic — works for OpenAI, Qdrant, Pinecone, Cohere, etc.
    """

    def __init__(self, provider: str, status_code: int, message: str):
        self.provider = provider
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{provider}] {status_code}: {message}")


class VectorStoreNotImplementedError(PipelineError):
    """Raised when the selected vector store has no backing path for an operation.

    Lets callers tell "feature unavailable" apart from "no matches".
    """

    def __init__(self, provider: str, operation: str):
        self.provider = provider
        self.operation = operation
        super().__init__(f"Vector store '{provider}' does not implement '{operation}'")


class RetrievalTimeoutError(PipelineError):
    """Raised when a retrieval session exceeds its overall deadline."""

    def __init__(self, stage: str, timeout: float):
        self.stage = stage
        self.timeout = timeout
        super().__init__(f"Retrieval exceeded {timeout:g}s during stage '{stage}'")
