"""AI-powered sentiment analyzer using OpenAI."""
import json
import asyncio
from typing import Dict, Any, List, Optional
from openai import AsyncOpenAI


class AIProviderError(Exception):
    """Raised when the AI provider cannot produce a usable verdict."""


# Score used when the model returns a label but no usable score
LABEL_DEFAULT_SCORES = {"Positive": 0.75, "Neutral": 0.5, "Negative": 0.25}


class AISentimentAnalyzer:
    """Handles AI-based sentiment, keyword and emotion extraction."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float,
        enabled: bool = True,
        client: Optional[AsyncOpenAI] = None
    ):
        """Initialize the AI analyzer.

        Args:
            api_key: OpenAI API key; no client is created when empty
            model: Chat completion model name
            timeout: Seconds allowed per request
            enabled: Feature switch for the provider
            client: Pre-built client, mainly for tests
        """
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key)
        self.client = client
        self.model = model
        self.timeout = timeout
        self.enabled = enabled

    @property
    def available(self) -> bool:
        return self.enabled and self.client is not None

    def _build_prompt(self, feedback_text: str) -> str:
        """Build the prompt for AI analysis.

        Design considerations:
        - Clear output format (JSON) for reliable parsing
        - Few-shot examples to anchor the score scale
        - Explicit handling of gibberish input
        """
        prompt = f"""Analyze the sentiment of the following customer feedback, extract keywords and identify emotions.

FEEDBACK: "{feedback_text}"

Return ONLY a valid JSON object with these fields:
- label: one of ["Positive", "Neutral", "Negative"]
- score: number between 0 and 1 (0 = very negative, 0.5 = neutral, 1 = very positive)
- keywords: up to 5 short lowercase keywords, most important first
- emotions: up to 3 lowercase emotions such as "joy", "sadness", "anger", "surprise", "fear", "frustrated"
- confidence: number between 0 and 1 describing how clear the sentiment is
- summary: one short sentence summarizing the feedback

Rules:
1. score below 0.4 means Negative, 0.4 to 0.6 Neutral, above 0.6 Positive
2. If the sentiment is sarcastic or unclear, lower the confidence
3. For gibberish or non-feedback text use label "Neutral", score 0.5, confidence 0.2

Examples:
- "Checkout was fast and the staff were lovely" → {{"label": "Positive", "score": 0.9, "keywords": ["checkout", "staff"], "emotions": ["joy"], "confidence": 0.9, "summary": "Praises checkout speed and staff."}}
- "The app crashes every time I upload a photo" → {{"label": "Negative", "score": 0.15, "keywords": ["app", "crashes", "upload"], "emotions": ["frustrated"], "confidence": 0.9, "summary": "Reports crashes on photo upload."}}

Return ONLY the JSON object, no additional text:"""

        return prompt

    async def analyze(self, feedback_text: str) -> Dict[str, Any]:
        """Analyze feedback using OpenAI API.

        Args:
            feedback_text: The customer feedback to analyze

        Returns:
            Dictionary with label, score, keywords, emotions,
            confidence and summary

        Raises:
            AIProviderError: If the provider fails (caller should fall back)
        """
        if not self.enabled:
            raise AIProviderError("AI provider disabled in config")
        if not self.client:
            raise AIProviderError("OpenAI client not configured")

        prompt = self._build_prompt(feedback_text)

        try:
            # Use asyncio timeout to bound request latency
            async with asyncio.timeout(self.timeout):
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {
                            "role": "system",
                            "content": "You are a customer feedback sentiment analyzer. Always respond with valid JSON only."
                        },
                        {"role": "user", "content": prompt}
                    ],
                    temperature=0.3,  # Lower temperature for more consistent results
                    max_tokens=250
                )

            result_text = (response.choices[0].message.content or "").strip()
            return self._parse_ai_response(result_text)

        except asyncio.TimeoutError:
            raise AIProviderError(f"AI provider timeout after {self.timeout}s")
        except json.JSONDecodeError as e:
            raise AIProviderError(f"Failed to parse AI response: {e}")
        except AIProviderError:
            raise
        except Exception as e:
            raise AIProviderError(f"AI provider error: {str(e)}")

    def _parse_ai_response(self, response_text: str) -> Dict[str, Any]:
        """Parse and validate AI response.

        Handles common AI output issues:
        - Markdown code fences or extra text around JSON
        - Lowercase or unknown labels
        - Scores sent as strings, missing optional fields
        """
        response_text = response_text.strip()
        if response_text.startswith("```"):
            response_text = response_text.replace("```json", "").replace("```", "").strip()

        try:
            result = json.loads(response_text)
        except json.JSONDecodeError:
            # Try to find JSON object in the text
            start = response_text.find("{")
            end = response_text.rfind("}") + 1
            if start != -1 and end > start:
                result = json.loads(response_text[start:end])
            else:
                raise

        if not isinstance(result, dict):
            raise AIProviderError("AI response is not a JSON object")

        label = self._normalize_label(result.get("label"))
        score = self._to_float(result.get("score"))

        if score is None and label is None:
            raise AIProviderError("AI response has neither a label nor a score")
        if score is None:
            score = LABEL_DEFAULT_SCORES[label]

        confidence = self._to_float(result.get("confidence"))
        summary = result.get("summary")

        return {
            "label": label,
            "score": score,
            "keywords": self._string_list(result.get("keywords")),
            "emotions": self._string_list(result.get("emotions")),
            "confidence": 0.7 if confidence is None else confidence,
            "summary": summary.strip() if isinstance(summary, str) and summary.strip() else None,
        }

    @staticmethod
    def _normalize_label(value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        label = value.strip().capitalize()
        return label if label in LABEL_DEFAULT_SCORES else None

    @staticmethod
    def _to_float(value: Any) -> Optional[float]:
        if isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if number == number else None  # NaN

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        items: List[str] = []
        for item in value:
            if isinstance(item, str):
                cleaned = item.strip().lower()
                if cleaned and cleaned not in items:
                    items.append(cleaned)
        return items
