"""Harness pipeline execution client."""

import json
import logging
import time
import uuid
from typing import Any

import aiohttp

from ..config.models import HarnessConfig
from ..integrations.secrets import SecretStore
from .exceptions import (
    HarnessAuthenticationError,
    HarnessConnectionError,
    HarnessError,
    HarnessMalformedResponseError,
    HarnessNotFoundError,
    HarnessRateLimitError,
    HarnessServerError,
)

logger = logging.getLogger(__name__)


def module_slug(module: str) -> str:
    """Module name with dashes removed, as used in identifiers and paths."""
    return module.replace("-", "")


def render_runtime_inputs(config: HarnessConfig, module: str, environment: str) -> str:
    """Render the configured runtime inputs YAML for one module and environment."""
    values = {
        "module": module,
        "module_slug": module_slug(module),
        "environment": environment,
    }
    yaml_text = config.runtime_inputs_template.format(
        **values,
        pipeline_id=config.pipeline_id,
        service_ref=config.service_ref_template.format(**values),
        environment_ref=config.environment_ref_template.format(**values),
        infrastructure_ref=config.infrastructure_ref_template.format(**values),
    )
    if config.delegate_selector_template:
        yaml_text += (
            "      delegateSelectors:\n"
            f"        - {config.delegate_selector_template.format(**values)}\n"
        )
    return yaml_text


class HarnessClient:
    """Triggers Harness pipeline executions.

    The API key is loaded from the secret store for every request.
    """

    def __init__(self, config: HarnessConfig, secret_store: SecretStore) -> None:
        self.config = config
        self.secret_store = secret_store
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HarnessClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent},
            )
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _query_params(self) -> dict[str, str]:
        account = self.config.account_id
        return {
            "routingId": account,
            "accountIdentifier": account,
            "projectIdentifier": self.config.project_id,
            "orgIdentifier": self.config.org_id,
            "moduleType": self.config.module_type,
            "repoIdentifier": self.config.repo_identifier,
            "branch": self.config.branch,
            "notifyOnlyUser": "false",
            "parentEntityConnectorRef": self.config.parent_entity_connector_ref,
            "parentEntityRepoName": self.config.parent_entity_repo_name,
            "asyncPlanCreation": "false",
        }

    async def execute_pipeline(self, runtime_inputs_yaml: str) -> str:
        """Start a pipeline execution and return its execution URL.

        Raises:
            HarnessError: Non-2xx responses, mapped by status code
            HarnessMalformedResponseError: 2xx without ``data.executionUrl``
        """
        api_key = self.secret_store.load_token(self.config.api_key_key).strip()
        if not api_key:
            raise HarnessAuthenticationError(
                "Harness API key is not configured. Save it with the secret store first."
            )

        correlation_id = str(uuid.uuid4())[:8]
        url = (
            f"{self.config.base_url.rstrip('/')}/gateway/pipeline/api/pipeline/"
            f"execute/{self.config.pipeline_id}"
        )
        headers = {
            "x-api-key": api_key,
            "Harness-Account": self.config.account_id,
            "Content-Type": "application/yaml",
        }

        session = self._get_session()
        start_time = time.time()
        logger.debug(f"Harness request [{correlation_id}] POST {url}")
        try:
            async with session.post(
                url,
                params=self._query_params(),
                data=runtime_inputs_yaml.encode("utf-8"),
                headers=headers,
            ) as response:
                body = await response.text()
                logger.debug(
                    f"Harness response [{correlation_id}] {response.status} "
                    f"in {time.time() - start_time:.2f}s"
                )
                if not 200 <= response.status < 300:
                    self._raise_for_status(response.status, body, correlation_id)
        except TimeoutError as e:
            raise HarnessConnectionError(f"Request timeout for POST {url}") from e
        except aiohttp.ClientError as e:
            raise HarnessConnectionError(f"Connection error for POST {url}: {e}") from e

        return self._execution_url(body)

    def _raise_for_status(self, status: int, body: str, correlation_id: str) -> None:
        try:
            data = json.loads(body) if body else {}
        except json.JSONDecodeError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        message = data.get("message") or f"Harness request failed with HTTP {status}"

        logger.warning(f"Harness API error [{correlation_id}] {status}: {message}")

        if status in (401, 403):
            raise HarnessAuthenticationError(message, status, data)
        elif status == 404:
            raise HarnessNotFoundError(message, status, data)
        elif status == 429:
            raise HarnessRateLimitError(message, status, data)
        elif 500 <= status < 600:
            raise HarnessServerError(message, status, data)
        raise HarnessError(message, status, data)

    @staticmethod
    def _execution_url(body: str) -> str:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as e:
            raise HarnessMalformedResponseError("Harness response is not JSON") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        execution_url = data.get("executionUrl") if isinstance(data, dict) else None
        if not isinstance(execution_url, str) or not execution_url:
            raise HarnessMalformedResponseError(
                "Harness response has no data.executionUrl"
            )
        return execution_url
