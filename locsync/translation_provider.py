"""
Machine translation backends.

Each provider owns an :class:`AuthSession` that caches its credential and
refreshes it when it expires. Providers translate exactly the locales they are
given; mapping a regional locale onto the language the service expects is the
caller's job.
"""
import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

import requests
from openai import APIConnectionError, APIStatusError, AuthenticationError, OpenAI, OpenAIError
from openai.types.chat import ChatCompletionSystemMessageParam, ChatCompletionUserMessageParam

from locsync.errors import AuthError, ConfigError, ProviderError

logger = logging.getLogger(__name__)

AZURE_TOKEN_ENDPOINT = "https://api.cognitive.microsoft.com/sts/v1.0/issueToken"
AZURE_REGIONAL_TOKEN_ENDPOINT_FORMAT = "https://{region}.api.cognitive.microsoft.com/sts/v1.0/issueToken"
AZURE_TRANSLATE_ENDPOINT = "https://api.cognitive.microsofttranslator.com"
# Issued tokens are valid for ten minutes
AZURE_TOKEN_LIFETIME = timedelta(minutes=10)
# A cached token counts as expired this long before its advertised expiry
TOKEN_EXPIRY_MARGIN = timedelta(seconds=5)
DEFAULT_TIMEOUT = 60.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthSession:
    """
    A cached provider credential.

    The token is fetched on first use and fetched again once ``expires_at`` has
    passed. An expiry of ``None`` means the credential never expires.
    """

    def __init__(self, authenticate: Callable[[], Tuple[str, Optional[datetime]]],
                 clock: Callable[[], datetime] = _utcnow):
        self._authenticate = authenticate
        self._clock = clock
        self.token: Optional[str] = None
        self.expires_at: Optional[datetime] = None

    def is_valid(self) -> bool:
        if not self.token:
            return False
        return self.expires_at is None or self.expires_at > self._clock()

    def get_token(self) -> str:
        if not self.is_valid():
            logger.info("Fetching new translation service auth token...")
            self.token, self.expires_at = self._authenticate()
        return self.token


class TranslationProvider:
    """Base class for translation backends."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock
        self.session = AuthSession(self.authenticate, clock)

    def authenticate(self) -> Tuple[str, Optional[datetime]]:
        """Return a fresh ``(token, expires_at)`` pair or raise :class:`AuthError`."""
        raise NotImplementedError

    def translate(self, text: str, from_locale: str, to_locale: str) -> str:
        raise NotImplementedError


class AzureTranslatorProvider(TranslationProvider):
    """Microsoft Translator text API (v3) authenticated with short-lived bearer tokens."""

    def __init__(self, subscription_key: str, region: Optional[str] = None,
                 token_endpoint: Optional[str] = None, endpoint: str = AZURE_TRANSLATE_ENDPOINT,
                 timeout: float = DEFAULT_TIMEOUT, http: Optional[requests.Session] = None,
                 clock: Callable[[], datetime] = _utcnow):
        super().__init__(clock)
        self.subscription_key = subscription_key
        self.region = region
        if token_endpoint:
            self.token_endpoint = token_endpoint
        elif region:
            self.token_endpoint = AZURE_REGIONAL_TOKEN_ENDPOINT_FORMAT.format(region=region)
        else:
            self.token_endpoint = AZURE_TOKEN_ENDPOINT
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self.http = http or requests.Session()

    def authenticate(self) -> Tuple[str, Optional[datetime]]:
        try:
            response = self.http.post(
                self.token_endpoint,
                headers={'Ocp-Apim-Subscription-Key': self.subscription_key},
                timeout=self.timeout
            )
        except requests.RequestException as req_exc:
            raise AuthError(f"Could not reach token endpoint '{self.token_endpoint}': {req_exc}") from req_exc

        if response.status_code >= 400:
            raise AuthError("Translation service rejected the credentials",
                            status_code=response.status_code, body=response.text)

        token = response.text.strip()
        if not token:
            raise AuthError("Translation service returned an empty auth token")
        return f"Bearer {token}", self.clock() + AZURE_TOKEN_LIFETIME - TOKEN_EXPIRY_MARGIN

    def translate(self, text: str, from_locale: str, to_locale: str) -> str:
        token = self.session.get_token()
        logger.info("Using web service to translate '%s' to %s...", text, to_locale)
        try:
            response = self.http.post(
                f"{self.endpoint}/translate",
                params={'api-version': '3.0', 'from': from_locale, 'to': to_locale},
                headers={
                    'Authorization': token,
                    'Content-Type': 'application/json',
                    'X-ClientTraceId': str(uuid.uuid4())
                },
                json=[{'Text': text}],
                timeout=self.timeout
            )
        except requests.RequestException as req_exc:
            raise ProviderError(f"Translation request failed: {req_exc}") from req_exc

        if response.status_code >= 400:
            raise ProviderError(f"Translation of '{text}' to '{to_locale}' failed",
                                status_code=response.status_code, body=response.text)

        try:
            result = response.json()[0]['translations'][0]['text']
        except (ValueError, KeyError, IndexError, TypeError) as parse_exc:
            raise ProviderError("Unexpected translation response", status_code=response.status_code,
                                body=response.text) from parse_exc

        logger.debug("Resulting string: %s", result)
        return result


def extract_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Extract and replace placeholders in the text with unique tokens.

    Args:
        text (str): The text to process.

    Returns:
        Tuple[str, Dict[str, str]]: The processed text and placeholder mapping.
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    # Pattern to match placeholders like `{0}` or `{name}` and HTML-like tags
    pattern = re.compile(r'(<[^<>]+>)|({[^{}]+})')
    placeholder_mapping = {}

    def replace_placeholder(match):
        full_match = match.group(0)
        placeholder_token = f"__PH_{uuid.uuid4().hex}__"
        placeholder_mapping[placeholder_token] = full_match
        return placeholder_token

    processed_text = pattern.sub(replace_placeholder, text)
    return processed_text, placeholder_mapping


def restore_placeholders(text: str, placeholder_mapping: Dict[str, str]) -> str:
    for token, placeholder in placeholder_mapping.items():
        text = text.replace(token, placeholder)
    return text


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Strip quotes or square brackets wrapped around the translation unless the original had them too.
    """
    if translated_text.startswith('"') and translated_text.endswith('"') and not (
            original_text.startswith('"') and original_text.endswith('"')):
        translated_text = translated_text[1:-1]
    if translated_text.startswith('[') and translated_text.endswith(']') and not (
            original_text.startswith('[') and original_text.endswith(']')):
        translated_text = translated_text[1:-1]
    return translated_text


class OpenAITranslationProvider(TranslationProvider):
    """Chat-completion translation. The API key is the session credential and never expires."""

    SYSTEM_PROMPT = """
You are an expert translator specializing in software localization. Translate the user's text from the locale '{from_locale}' to the locale '{to_locale}'.

**Instructions**:
- **Do not translate or modify placeholder tokens**: Any text enclosed within double underscores `__` (e.g., `__PH_abc123__`) should remain exactly as is.
- **Preserve formatting**: Keep special characters and formatting such as `\\n` and `\\t`.
- **Do not add** any additional characters or punctuation (e.g., no square brackets, quotation marks, etc.).
- **Provide only** the translated text.
"""

    def __init__(self, api_key: str, model_name: str = 'gpt-4o-mini', timeout: float = DEFAULT_TIMEOUT,
                 client: Optional[OpenAI] = None, clock: Callable[[], datetime] = _utcnow):
        super().__init__(clock)
        self.api_key = api_key
        self.model_name = model_name
        self.timeout = timeout
        self.client = client

    def authenticate(self) -> Tuple[str, Optional[datetime]]:
        if not self.api_key:
            raise AuthError("OPENAI_API_KEY is empty")
        if self.client is None:
            try:
                self.client = OpenAI(api_key=self.api_key)
            except OpenAIError as client_exc:
                raise AuthError(f"Failed to initialize OpenAI client: {client_exc}") from client_exc
            logger.info("OpenAI client initialized successfully")
        return self.api_key, None

    def translate(self, text: str, from_locale: str, to_locale: str) -> str:
        self.session.get_token()
        processed_text, placeholder_mapping = extract_placeholders(text)
        logger.info("Using %s to translate '%s' to %s...", self.model_name, text, to_locale)

        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    ChatCompletionSystemMessageParam(
                        role="system",
                        content=self.SYSTEM_PROMPT.format(from_locale=from_locale, to_locale=to_locale)
                    ),
                    ChatCompletionUserMessageParam(role="user", content=processed_text)
                ],
                temperature=0.3,
                timeout=self.timeout,
            )
        except AuthenticationError as auth_exc:
            raise AuthError("OpenAI rejected the API key", status_code=auth_exc.status_code,
                            body=auth_exc.response.text) from auth_exc
        except APIStatusError as api_exc:
            raise ProviderError(f"Translation of '{text}' to '{to_locale}' failed",
                                status_code=api_exc.status_code, body=api_exc.response.text) from api_exc
        except (APIConnectionError, OpenAIError) as api_exc:
            raise ProviderError(f"Translation request failed: {api_exc.__class__.__name__} - {api_exc}") from api_exc

        content = response.choices[0].message.content
        if content is None:
            raise ProviderError(f"Empty translation returned for '{text}'")
        translated_text = restore_placeholders(content.strip(), placeholder_mapping)
        translated_text = clean_translated_text(translated_text, text)
        logger.debug("Resulting string: %s", translated_text)
        return translated_text


def build_provider(settings: Dict, environ: Dict[str, str]) -> TranslationProvider:
    """
    Create the configured translation provider.

    Args:
        settings: The ``provider`` section of the application config.
        environ: Environment variables holding the credentials.

    Raises:
        ConfigError: If the provider name is unknown or its credential is missing.
    """
    name = (settings.get('name') or 'azure').lower()
    timeout = float(settings.get('timeout', DEFAULT_TIMEOUT))

    if name == 'azure':
        key = environ.get('TRANSLATOR_API_KEY')
        if not key:
            raise ConfigError("TRANSLATOR_API_KEY environment variable not found; it is required by the 'azure' provider.")
        return AzureTranslatorProvider(
            subscription_key=key,
            region=settings.get('region'),
            token_endpoint=settings.get('token_endpoint'),
            endpoint=settings.get('endpoint') or AZURE_TRANSLATE_ENDPOINT,
            timeout=timeout
        )
    if name == 'openai':
        key = environ.get('OPENAI_API_KEY')
        if not key:
            raise ConfigError("OPENAI_API_KEY environment variable not found; it is required by the 'openai' provider.")
        if not key.startswith('sk-'):
            logger.warning("Warning: OPENAI_API_KEY does not start with 'sk-'. This may be invalid.")
        return OpenAITranslationProvider(
            api_key=key,
            model_name=settings.get('model_name', 'gpt-4o-mini'),
            timeout=timeout
        )
    raise ConfigError(f"Unknown translation provider '{name}'. Expected 'azure' or 'openai'.")
