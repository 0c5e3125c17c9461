from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional
from .settings import settings

logger = logging.getLogger(__name__)


class GeminiClient:
	"""Thin async wrapper over the Gemini ``generateContent`` REST endpoint.

	Plain-text prompts may fall back to OpenRouter when it is configured;
	structured (JSON schema) requests also ask OpenRouter for a JSON object.
	"""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ValueError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = settings.gemini_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._openrouter_api_key = settings.openrouter_api_key
		self._fallback_enabled = bool(self._openrouter_api_key)
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def __aenter__(self) -> "GeminiClient":
		return self

	async def __aexit__(self, *exc_info: Any) -> None:
		await self.aclose()

	async def generate(self, prompt: str, *, temperature: Optional[float] = None) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if temperature is not None:
			payload["generationConfig"] = {"temperature": temperature}
		return await self._post_payload(payload, fallback_prompt=prompt)

	async def generate_json(
		self,
		prompt: str,
		*,
		response_schema: Dict[str, Any],
		temperature: Optional[float] = None,
	) -> str:
		"""Request structured output; returns the raw JSON text of the first candidate."""
		generation_config: Dict[str, Any] = {
			"responseMimeType": "application/json",
			"responseSchema": response_schema,
		}
		if temperature is not None:
			generation_config["temperature"] = temperature
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": [{"text": prompt}]}],
			"generationConfig": generation_config,
		}
		return await self._post_payload(payload, fallback_prompt=prompt, json_mode=True)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_prompt: Optional[str],
		json_mode: bool = False,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPError as err:
			last_error = err
		if last_error is None:
			try:
				data = r.json()
				return data["candidates"][0]["content"]["parts"][0]["text"]
			except Exception:
				last_error = RuntimeError(f"Unexpected Gemini response: {r.text[:500]}")
		if not self._fallback_enabled or fallback_prompt is None:
			raise last_error
		logger.warning("Gemini call failed (%s); trying OpenRouter fallback", last_error)
		return await self._fallback_generate(fallback_prompt, last_error, json_mode=json_mode)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Exception, *, json_mode: bool) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		if json_mode:
			payload["response_format"] = {"type": "json_object"}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except Exception as fallback_err:
			raise RuntimeError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err
