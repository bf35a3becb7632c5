"""
FinScope — Hugging Face Inference Client

FinBERT financial-sentiment scoring. Optional: without a key every call
returns None and the keyword scorer takes over.
"""

from __future__ import annotations

from typing import Optional

import httpx

from finscope.data.base_client import UpstreamClient

_FINBERT_URL = "https://api-inference.huggingface.co/models/ProsusAI/finbert"

MAX_TEXTS = 10
MAX_CHARS = 512


class HuggingFaceClient(UpstreamClient):
    name = "huggingface"

    def __init__(self, api_key: str = "", transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)
        self._api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def classify(self, texts: list[str]) -> Optional[dict[str, float]]:
        """Average FinBERT label probabilities over the first ten texts.

        Returns ``{"positive": p, "neutral": p, "negative": p}`` with
        probabilities in [0, 1], or None.
        """
        if not self.is_configured:
            return None
        batch = [t[:MAX_CHARS] for t in texts if t][:MAX_TEXTS]
        if not batch:
            return None

        data = await self._post_json(
            _FINBERT_URL,
            {"inputs": batch},
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=15,
        )
        if not isinstance(data, list) or not data:
            return None

        totals = {"positive": 0.0, "neutral": 0.0, "negative": 0.0}
        scored = 0
        for result in data:
            # One list of {label, score} per input text
            labels = result if isinstance(result, list) else [result]
            hit = False
            for entry in labels:
                if not isinstance(entry, dict):
                    continue
                label = str(entry.get("label", "")).lower()
                if label in totals:
                    totals[label] += float(entry.get("score", 0.0))
                    hit = True
            scored += hit
        if not scored:
            return None
        return {k: v / scored for k, v in totals.items()}
