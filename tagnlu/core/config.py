"""
Configuration management for tagnlu.

Reads environment variables and an optional .env file for the NLU
resource paths, engine tuning and server settings.
"""

import os
import logging
from typing import Dict
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("config")

# Load .env file if available
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
    logger.debug("Loaded .env file from %s", env_path)
else:
    # Also try loading from current directory
    load_dotenv()


def parse_bindings(value: str) -> Dict[str, str]:
    """
    Parse "type=module:Class,type2=module.Class" into a dict.

    Blank entries are ignored; an entry without '=' is an error.
    """
    bindings: Dict[str, str] = {}
    for entry in value.split(","):
        entry = entry.strip()
        if not entry:
            continue
        type_name, sep, target = entry.partition("=")
        if not sep or not type_name.strip() or not target.strip():
            raise ValueError(f"invalid slot parser binding: {entry!r} (expected type=module:Class)")
        bindings[type_name.strip()] = target.strip()
    return bindings


class Config:
    """
    Centralized configuration for tagnlu.

    Reads from environment variables with sensible defaults.
    """

    # NLU resources
    NLU_MODEL_PATH: str = os.getenv("NLU_MODEL_PATH", "models/nlu.tflite")
    NLU_METADATA_PATH: str = os.getenv("NLU_METADATA_PATH", "models/nlu.json")
    NLU_VOCAB_PATH: str = os.getenv("NLU_VOCAB_PATH", "models/vocab.txt")

    # Engine tuning
    NLU_MAX_TOKENS: int = int(os.getenv("NLU_MAX_TOKENS", "0"))  # 0 = model capacity
    NLU_WORKERS: int = int(os.getenv("NLU_WORKERS", "2"))
    NLU_SLOT_PARSERS: str = os.getenv("NLU_SLOT_PARSERS", "")

    # Server Configuration
    SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
    SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))

    @classmethod
    def nlu_config(cls):
        """
        Build the engine configuration from the current settings.

        Returns:
            NLUConfig instance
        """
        from tagnlu.core.nlu.engine import NLUConfig
        return NLUConfig(
            model_path=cls.NLU_MODEL_PATH,
            metadata_path=cls.NLU_METADATA_PATH,
            vocab_path=cls.NLU_VOCAB_PATH,
            max_tokens=cls.NLU_MAX_TOKENS or None,
            slot_parsers=parse_bindings(cls.NLU_SLOT_PARSERS),
            workers=cls.NLU_WORKERS,
        )

    @classmethod
    def get_nlu_engine(cls, trace_listeners=()):
        """
        Create an NLU engine; resources start loading in the background.

        Returns:
            NLUEngine instance
        """
        from tagnlu.core.nlu.engine import NLUEngine
        logger.info(
            "Using NLU model %s (metadata: %s, vocab: %s)",
            cls.NLU_MODEL_PATH, cls.NLU_METADATA_PATH, cls.NLU_VOCAB_PATH,
        )
        return NLUEngine(cls.nlu_config(), trace_listeners=trace_listeners)

    @classmethod
    def print_config(cls):
        """Print current configuration (useful for debugging)."""
        print("\ntagnlu configuration:")
        print(f"  Model: {cls.NLU_MODEL_PATH}")
        print(f"  Metadata: {cls.NLU_METADATA_PATH}")
        print(f"  Vocabulary: {cls.NLU_VOCAB_PATH}")
        print(f"  Max tokens: {cls.NLU_MAX_TOKENS or 'model capacity'}")
        print(f"  Workers: {cls.NLU_WORKERS}")
        if cls.NLU_SLOT_PARSERS:
            print(f"  Slot parsers: {cls.NLU_SLOT_PARSERS}")
        print(f"  Server: {cls.SERVER_HOST}:{cls.SERVER_PORT}")
        print()
