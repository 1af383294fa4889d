"""Abstract provider contracts.

Every external collaborator (LLM, blob store, relational store) is reached
through one of these ABCs so services never import a concrete backend.
"""

from docqa.interfaces.blob_store import IBlobStore
from docqa.interfaces.extraction_store import IExtractionStore
from docqa.interfaces.llm_provider import Attachment, ILLMProvider, LLMCompletion
from docqa.interfaces.prompt_store import IPromptStore
from docqa.interfaces.qa_store import IQAStore

__all__ = [
    "Attachment",
    "IBlobStore",
    "IExtractionStore",
    "ILLMProvider",
    "IPromptStore",
    "IQAStore",
    "LLMCompletion",
]
