#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Stark Discipline Hub v1.2 - Jarvis Analysis Service
Анализ последних дней истории через OpenRouter (OpenAI-совместимый API)

Версия: 1.2.0
"""

import json
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Any
import logging

import openai
from openai import AsyncOpenAI

from config import config, AIConfig

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class AnalysisError(Exception):
    """Ошибка обращения к ядру анализа"""
    pass

# ===== PROMPTS & FALLBACKS =====

SYSTEM_PROMPT = "You are Jarvis, strict and witty."

ANALYSIS_PROMPT = (
    'You are Jarvis, an ironic British assistant. Address user only as "Сэр". '
    'Analyze discipline trends and behavior correlations, no generic praise. Data: {data}'
)

FALLBACK_NO_KEY = "Сэр, отсутствует OPENROUTER_API_KEY. Добавьте ключ в .env для анализа."
FALLBACK_HTTP_STATUS = "Сэр, OpenRouter вернул код {status}. Проверьте ключ и лимиты."
FALLBACK_UNAVAILABLE = "Сэр, канал связи с OpenRouter временно недоступен."
FALLBACK_EMPTY = "Сэр, ответ от ядра анализа не получен."

# ===== DATA CLASSES =====

@dataclass
class AnalysisStats:
    """Статистика обращений к анализу"""
    total_requests: int = 0
    successful_requests: int = 0
    fallback_responses: int = 0
    total_tokens_used: int = 0
    last_request_at: Optional[str] = None
    last_response_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_requests': self.total_requests,
            'successful_requests': self.successful_requests,
            'fallback_responses': self.fallback_responses,
            'total_tokens_used': self.total_tokens_used,
            'last_request_at': self.last_request_at,
            'last_response_time_ms': self.last_response_time_ms
        }

# ===== MAIN SERVICE =====

class HistoryAnalyst:
    """
    summarize(recent_series) -> text

    Никогда не пробрасывает исключения: любой сбой превращается
    в фиксированный текст-заглушку.
    """

    def __init__(self, settings: Optional[AIConfig] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or config.ai
        self.client = client
        self.stats = AnalysisStats()

        if self.client is None and self.settings.api_key:
            self.client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.request_timeout
            )

        logger.info(f"Analysis service initialized - OpenRouter: {'✅' if self.enabled else '❌'}")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def build_prompt(self, recent_series: List[Dict[str, Any]]) -> str:
        data = json.dumps(recent_series, ensure_ascii=False, separators=(',', ':'))
        return ANALYSIS_PROMPT.format(data=data)

    async def summarize(self, recent_series: List[Dict[str, Any]]) -> str:
        self.stats.total_requests += 1
        self.stats.last_request_at = datetime.now().isoformat()

        if not self.enabled:
            return self._fallback(FALLBACK_NO_KEY)

        start_time = time.time()
        try:
            content = await self._request(self.build_prompt(recent_series))
        except openai.APIStatusError as e:
            logger.warning(f"OpenRouter returned status {e.status_code}")
            return self._fallback(FALLBACK_HTTP_STATUS.format(status=e.status_code))
        except AnalysisError as e:
            logger.warning(f"Analysis failed: {e}")
            return self._fallback(FALLBACK_UNAVAILABLE)
        finally:
            self.stats.last_response_time_ms = int((time.time() - start_time) * 1000)

        if not content:
            return self._fallback(FALLBACK_EMPTY)

        self.stats.successful_requests += 1
        return content

    async def _request(self, prompt: str) -> Optional[str]:
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.settings.max_tokens
            )
        except openai.APIStatusError:
            raise
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise AnalysisError(f"OpenRouter connection failed: {e}") from e
        except Exception as e:
            logger.error(f"OpenRouter API error: {e}")
            raise AnalysisError(str(e)) from e

        if response.usage:
            self.stats.total_tokens_used += response.usage.total_tokens

        if not response.choices:
            return None
        message = response.choices[0].message
        if message is None or not message.content:
            return None
        return message.content.strip()

    def _fallback(self, text: str) -> str:
        self.stats.fallback_responses += 1
        return text

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()


__all__ = [
    'AnalysisError',
    'AnalysisStats',
    'HistoryAnalyst',
    'FALLBACK_NO_KEY',
    'FALLBACK_HTTP_STATUS',
    'FALLBACK_UNAVAILABLE',
    'FALLBACK_EMPTY'
]
