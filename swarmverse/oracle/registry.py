"""Selectable decision-oracle models."""

from __future__ import annotations

from typing import List

from swarmverse.schemas import ModelDefinition, ModelProvider


SUPPORTED_MODELS: List[ModelDefinition] = [
    ModelDefinition(id="qwen3:8b", name="Qwen3 8B (Ollama)", provider=ModelProvider.OLLAMA),
    ModelDefinition(id="llama3.1:8b", name="Llama 3.1 8B (Ollama)", provider=ModelProvider.OLLAMA),
    ModelDefinition(id="mistral:7b", name="Mistral 7B (Ollama)", provider=ModelProvider.OLLAMA),
    ModelDefinition(id="gemini-2.5-flash", name="Gemini 2.5 Flash", provider=ModelProvider.GOOGLE_AI),
    ModelDefinition(id="gemini-2.5-flash-lite", name="Gemini 2.5 Flash Lite", provider=ModelProvider.GOOGLE_AI),
    ModelDefinition(id="gemma-3-27b-it", name="Gemma 3 27B", provider=ModelProvider.GOOGLE_AI),
]

# Models in this family reject the JSON response mime type
NO_JSON_MODE_PREFIXES = ("gemma-",)


def default_model() -> ModelDefinition:
    """First local model, so a fresh install runs without credentials."""

    for model in SUPPORTED_MODELS:
        if model.provider is ModelProvider.OLLAMA:
            return model
    return SUPPORTED_MODELS[0]


def find_model(model_id: str) -> ModelDefinition:
    for model in SUPPORTED_MODELS:
        if model.id == model_id:
            return model
    known = ", ".join(model.id for model in SUPPORTED_MODELS)
    raise KeyError(f"Unknown model '{model_id}'. Known models: {known}")


def supports_json_mode(model_id: str) -> bool:
    return not model_id.startswith(NO_JSON_MODE_PREFIXES)


__all__ = ["SUPPORTED_MODELS", "default_model", "find_model", "supports_json_mode"]
