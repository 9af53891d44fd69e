"""
AI Client - Unified interface for the LLM APIs behind the suggestion service.

The grid asks an LLM to propose metric columns from free-text report
instructions, and to propose option lists for select columns. Users bring
their own API keys (or use Ollama locally for free).

Supported Providers:
    - OpenAI (GPT) - requires API key
    - Claude (Anthropic) - requires API key
    - Ollama (Local) - FREE, runs locally, no API key needed
      Download: https://ollama.com/download

Usage:
    from core.ai_client import AIClient

    client = AIClient(provider='openai', api_key='sk-...')
    response = client.analyze_instructions("Оценить участие в обсуждениях...")

    # Ollama (free, local - no API key needed!)
    client = AIClient(provider='ollama', model='llama3.2')
"""

import os
import json
from typing import Optional, Dict
from dataclasses import dataclass
from enum import Enum


class AIProvider(Enum):
    """Supported AI providers."""
    OPENAI = "openai"
    CLAUDE = "claude"
    OLLAMA = "ollama"  # Free, local - https://ollama.com/download


@dataclass
class AIResponse:
    """Standardized response from AI models."""
    content: str
    provider: str
    model: str
    usage: Dict  # Token counts
    raw_response: Dict  # Full API response for debugging


COLUMNS_SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes educational requirements and suggests "
    "appropriate data columns for tracking student progress."
)

OPTIONS_SYSTEM_PROMPT = (
    "You are a helpful assistant that generates appropriate options for educational "
    "assessment columns."
)


class AIClient:
    """
    Unified AI client supporting multiple providers.

    Provides a consistent interface regardless of which AI provider is used.
    """

    # Default models for each provider
    DEFAULT_MODELS = {
        AIProvider.OPENAI: "gpt-4",
        AIProvider.CLAUDE: "claude-sonnet-4-20250514",
        AIProvider.OLLAMA: "llama3.2",
    }

    # Ollama default URL (can be overridden)
    OLLAMA_BASE_URL = "http://localhost:11434"

    def __init__(self, provider: str = "openai", api_key: str = None, model: str = None,
                 ollama_base_url: str = None, client=None):
        """
        Initialize AI client.

        Args:
            provider: One of 'openai', 'claude', 'ollama'
            api_key: API key for the provider (or set via environment variable)
                     Not required for Ollama
            model: Specific model to use (or uses default for provider)
            ollama_base_url: Custom Ollama server URL (default: http://localhost:11434)
            client: Pre-built SDK client (skips SDK construction)
        """
        provider_lower = provider.lower()
        if provider_lower in ("openai", "gpt"):
            self.provider = AIProvider.OPENAI
        elif provider_lower in ("claude", "anthropic"):
            self.provider = AIProvider.CLAUDE
        elif provider_lower in ("ollama", "local"):
            self.provider = AIProvider.OLLAMA
        else:
            raise ValueError(f"Unknown provider: {provider}. Use 'openai', 'claude', or 'ollama'")

        self.ollama_base_url = ollama_base_url or self.OLLAMA_BASE_URL

        if self.provider == AIProvider.OLLAMA or client is not None:
            self.api_key = api_key
        else:
            self.api_key = api_key or self._get_api_key_from_env()
            if not self.api_key:
                raise ValueError(f"No API key provided for {self.provider.value}. "
                                 f"Set {self._get_env_var_name()} or pass api_key parameter.")

        self.model = model or self.DEFAULT_MODELS[self.provider]

        self._client = client
        if self._client is None:
            self._init_client()

    def _get_env_var_name(self) -> str:
        """Get environment variable name for API key."""
        return {
            AIProvider.OPENAI: "OPENAI_API_KEY",
            AIProvider.CLAUDE: "ANTHROPIC_API_KEY",
        }[self.provider]

    def _get_api_key_from_env(self) -> Optional[str]:
        return os.environ.get(self._get_env_var_name())

    def _init_client(self):
        """Initialize the provider-specific client library."""
        if self.provider == AIProvider.CLAUDE:
            try:
                import anthropic
                self._client = anthropic.Anthropic(api_key=self.api_key)
            except ImportError:
                raise ImportError("anthropic package not installed. Run: pip install anthropic")

        elif self.provider == AIProvider.OPENAI:
            try:
                import openai
                self._client = openai.OpenAI(api_key=self.api_key)
            except ImportError:
                raise ImportError("openai package not installed. Run: pip install openai")

        elif self.provider == AIProvider.OLLAMA:
            # Ollama speaks the OpenAI-compatible API
            try:
                import openai
                self._client = openai.OpenAI(
                    base_url=f"{self.ollama_base_url}/v1",
                    api_key="ollama"  # Ollama doesn't check this, but openai client requires it
                )
            except ImportError:
                raise ImportError("openai package not installed. Run: pip install openai\n"
                                  "Note: Ollama uses the OpenAI-compatible API.")

    def complete(self,
                 prompt: str,
                 system_prompt: str = None,
                 max_tokens: int = 1000,
                 temperature: float = 0.7) -> AIResponse:
        """
        Send a completion request to the AI model.

        Args:
            prompt: The user's message
            system_prompt: Optional system instructions
            max_tokens: Maximum response length
            temperature: Creativity (0.0 = deterministic, 1.0 = creative)

        Returns:
            AIResponse with content and metadata
        """
        if self.provider == AIProvider.CLAUDE:
            return self._complete_claude(prompt, system_prompt, max_tokens, temperature)
        return self._complete_openai_compatible(prompt, system_prompt, max_tokens, temperature)

    def _complete_claude(self, prompt, system_prompt, max_tokens, temperature) -> AIResponse:
        """Claude/Anthropic completion."""
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = self._client.messages.create(**kwargs)

        return AIResponse(
            content=response.content[0].text,
            provider="claude",
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            raw_response=response.model_dump() if hasattr(response, 'model_dump') else {}
        )

    def _complete_openai_compatible(self, prompt, system_prompt, max_tokens, temperature) -> AIResponse:
        """OpenAI/GPT completion (also used for Ollama)."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            if self.provider == AIProvider.OLLAMA and "connection" in str(e).lower():
                raise ConnectionError(
                    f"Cannot connect to Ollama at {self.ollama_base_url}.\n\n"
                    "Make sure Ollama is running:\n"
                    "1. Download Ollama (FREE): https://ollama.com/download\n"
                    "2. Install and run it\n"
                    "3. Pull a model: ollama pull llama3.2\n"
                    "4. Try again"
                ) from e
            raise

        usage = getattr(response, 'usage', None)
        return AIResponse(
            content=response.choices[0].message.content,
            provider=self.provider.value,
            model=getattr(response, 'model', None) or self.model,
            usage={
                "input_tokens": getattr(usage, 'prompt_tokens', 0) if usage else 0,
                "output_tokens": getattr(usage, 'completion_tokens', 0) if usage else 0,
            },
            raw_response=response.model_dump() if hasattr(response, 'model_dump') else {}
        )

    # =========================================================================
    # Metric grid helpers
    # =========================================================================

    def analyze_instructions(self, instructions: str) -> AIResponse:
        """
        Ask for metric columns that fit a set of report instructions.

        Args:
            instructions: Free-text report requirements

        Returns:
            AIResponse whose content should be a JSON array of
            {field, headerName, type, description, options?} objects
        """
        prompt = f"""
Analyze the following instructions for a student report and suggest appropriate columns for a data table.
The columns should help teachers track and evaluate student progress.

Instructions:
{instructions}

Please provide a list of columns in the following format:
- field: unique identifier for the column
- headerName: display name in Russian
- type: one of 'text', 'number', or 'select'
- description: brief explanation of what this column measures
- options: (optional) array of possible values for select type columns

Focus on practical, measurable aspects that teachers can easily track.
Return only a JSON array."""

        return self.complete(
            prompt=prompt,
            system_prompt=COLUMNS_SYSTEM_PROMPT,
            max_tokens=1000,
            temperature=0.7,
        )

    def generate_column_options(self, header_name: str, description: str) -> AIResponse:
        """
        Ask for 3-5 options for a select column.

        Returns:
            AIResponse whose content should be a JSON array of strings
        """
        prompt = f"""
Generate appropriate options for a select column in a student report.
Column: {header_name}
Description: {description}

Please provide a list of 3-5 options that make sense for this column.
The options should be in Russian and be mutually exclusive.
Return only a JSON array of strings."""

        return self.complete(
            prompt=prompt,
            system_prompt=OPTIONS_SYSTEM_PROMPT,
            max_tokens=500,
            temperature=0.7,
        )


def strip_code_fence(content: str) -> str:
    """Remove a ```json ... ``` wrapper that models often add around JSON."""
    text = (content or "").strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def parse_json_content(content: str):
    """Parse JSON from a model response. Raises json.JSONDecodeError."""
    return json.loads(strip_code_fence(content))
