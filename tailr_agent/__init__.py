"""tailr-agent - resume tailoring assistant with tool calling and semantic search."""

__version__ = "0.1.0"

from .agent import ChatReply, ResumeAssistant
from .config import AppConfig, load_config
from .factory import create_assistant

__all__ = ["AppConfig", "ChatReply", "ResumeAssistant", "create_assistant", "load_config", "__version__"]
