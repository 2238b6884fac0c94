from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aioboto3
from openai import AsyncAzureOpenAI, AsyncOpenAI

from carecall.core.config import AppSettings


logger = logging.getLogger(__name__)


class MoodClassificationClient:
    """Schema-constrained completions for mood scoring.

    One provider is chosen at construction time, in order of preference:
    Azure OpenAI, OpenAI, then AWS Bedrock. Each ``classify`` call makes a
    single request to that provider; SDK-level retries are disabled.
    """

    def __init__(self, settings: AppSettings):
        self._settings = settings
        self._azure_client: AsyncAzureOpenAI | None = None
        self._openai_client: AsyncOpenAI | None = None
        timeout = settings.mood_analysis_timeout_seconds

        if settings.azure_openai_api_key and settings.azure_openai_endpoint and settings.azure_openai_deployment:
            self._azure_client = AsyncAzureOpenAI(
                api_key=settings.azure_openai_api_key.get_secret_value(),
                azure_endpoint=settings.azure_openai_endpoint,
                api_version=settings.azure_openai_api_version or "2024-08-01-preview",
                timeout=timeout,
                max_retries=0,
            )
        elif settings.openai_api_key:
            self._openai_client = AsyncOpenAI(
                api_key=settings.openai_api_key.get_secret_value(),
                timeout=timeout,
                max_retries=0,
            )

    @property
    def provider(self) -> str | None:
        if self._azure_client:
            return "azure-openai"
        if self._openai_client:
            return "openai"
        if self._bedrock_region and self._settings.bedrock_model_id:
            return "bedrock"
        return None

    @property
    def _bedrock_region(self) -> str | None:
        return self._settings.bedrock_region or self._settings.aws_region

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    async def classify(
        self,
        prompt: str,
        *,
        system_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> str | None:
        """Return the raw JSON text produced for ``prompt`` under ``schema``."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]

        if self._azure_client:
            return await self._complete(
                self._azure_client,
                model=self._settings.azure_openai_deployment,
                messages=messages,
                schema_name=schema_name,
                schema=schema,
            )

        if self._openai_client:
            return await self._complete(
                self._openai_client,
                model=self._settings.openai_mood_model,
                messages=messages,
                schema_name=schema_name,
                schema=schema,
            )

        if self._bedrock_region and self._settings.bedrock_model_id:
            bedrock_prompt = self._build_bedrock_prompt(system_prompt, prompt, schema)
            return await asyncio.wait_for(
                self._invoke_bedrock_prompt(bedrock_prompt),
                timeout=self._settings.mood_analysis_timeout_seconds,
            )

        raise RuntimeError("No mood classification provider is configured.")

    async def _complete(
        self,
        client: AsyncOpenAI | AsyncAzureOpenAI,
        *,
        model: str | None,
        messages: list[dict[str, str]],
        schema_name: str,
        schema: dict[str, Any],
    ) -> str | None:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self._settings.mood_analysis_temperature,
            max_tokens=self._settings.mood_analysis_max_tokens,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": schema_name, "schema": schema, "strict": True},
            },
        )
        content = response.choices[0].message.content if response.choices else None
        return content.strip() if content else None

    def _build_bedrock_prompt(self, system_prompt: str, prompt: str, schema: dict[str, Any]) -> str:
        return (
            f"{system_prompt}\n\n{prompt}\n\n"
            "Respond with a single JSON object that validates against this JSON schema "
            "and contains no other text:\n"
            f"{json.dumps(schema)}"
        )

    async def _invoke_bedrock_prompt(self, prompt: str) -> str | None:
        async with self._bedrock_client() as client:
            body = json.dumps(
                {
                    "inputText": prompt,
                    "textGenerationConfig": {
                        "maxTokenCount": self._settings.mood_analysis_max_tokens,
                        "temperature": self._settings.mood_analysis_temperature,
                        "topP": 0.9,
                    },
                }
            )
            response = await client.invoke_model(
                modelId=self._settings.bedrock_model_id,
                body=body,
            )
            payload = await response["body"].read()

        parsed = json.loads(payload)
        results = parsed.get("results")
        if results:
            text = results[0].get("outputText")
            if text:
                return text.strip()
        return None

    def _bedrock_client(self):
        session_kwargs: dict[str, Any] = {"region_name": self._bedrock_region}
        if self._settings.aws_access_key_id and self._settings.aws_secret_access_key:
            session_kwargs.update(
                {
                    "aws_access_key_id": self._settings.aws_access_key_id.get_secret_value(),
                    "aws_secret_access_key": self._settings.aws_secret_access_key.get_secret_value(),
                }
            )

        session = aioboto3.Session()
        return session.client("bedrock-runtime", **session_kwargs)
