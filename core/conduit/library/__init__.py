from conduit.library.agents import InMemoryAgentStore, JsonAgentStore
from conduit.library.artifacts import FileArtifactStore
from conduit.library.credentials import CredentialBag
from conduit.library.llm import LangChainProviderRouter, llm_model
from conduit.library.memory import MemoryStore
from conduit.library.progress import CallbackProgressSink, NullProgressSink, RecordingProgressSink

__all__ = [
    "CallbackProgressSink",
    "CredentialBag",
    "FileArtifactStore",
    "InMemoryAgentStore",
    "JsonAgentStore",
    "LangChainProviderRouter",
    "MemoryStore",
    "NullProgressSink",
    "RecordingProgressSink",
    "llm_model",
]
