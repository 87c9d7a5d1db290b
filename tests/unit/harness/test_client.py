"""
Unit tests for HarnessClient and runtime input rendering.

Why: Deployments are started through a single Harness call; credentials,
     identifiers and error mapping all have to be right for it to work.

What: Tests request shape, execution URL extraction, status mapping and
      runtime input templating.

How: Mocks HTTP with aioresponses and keys with InMemorySecretStore.
"""

import re
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
import yaml
from aioresponses import aioresponses
from pydantic import ValidationError

from deploy_tracker.config.models import HarnessConfig
from deploy_tracker.harness import (
    HarnessAuthenticationError,
    HarnessClient,
    HarnessError,
    HarnessMalformedResponseError,
    HarnessNotFoundError,
    HarnessRateLimitError,
    HarnessServerError,
    module_slug,
    render_runtime_inputs,
)
from tests.fixtures import InMemorySecretStore

EXECUTE = "https://harness.example.com/gateway/pipeline/api/pipeline/execute/deploy"
EXECUTE_URL = re.compile(rf"^{re.escape(EXECUTE)}(\?.*)?$")


@pytest.fixture
def config() -> HarnessConfig:
    """Harness config for a test account."""
    return HarnessConfig(
        base_url="https://harness.example.com/",
        account_id="acct-1",
        org_id="platform",
        project_id="web",
        pipeline_id="deploy",
        service_ref_template="{module_slug}_svc",
        environment_ref_template="{environment}_env",
        infrastructure_ref_template="{environment}_{module}",
    )


@pytest_asyncio.fixture
async def client(config: HarnessConfig) -> AsyncGenerator[HarnessClient, None]:
    """Client with an API key in the secret store."""
    harness = HarnessClient(config, InMemorySecretStore({"harness-api-key": "pat-123"}))
    yield harness
    await harness.close()


def test_module_slug() -> None:
    """Test that dashes are removed."""
    assert module_slug("order-api-v2") == "orderapiv2"


def test_render_runtime_inputs(config: HarnessConfig) -> None:
    """Test that identifiers are rendered from the templates."""
    rendered = render_runtime_inputs(config, "order-api", "qa")

    assert "identifier: deploy" in rendered
    assert "serviceRef: orderapi_svc" in rendered
    assert "environmentRef: qa_env" in rendered
    assert "- identifier: qa_order-api" in rendered
    assert "delegateSelectors" not in rendered


def test_render_delegate_selector(config: HarnessConfig) -> None:
    """Test that a delegate selector is appended when configured."""
    config.delegate_selector_template = "{environment}-delegate"

    rendered = render_runtime_inputs(config, "order-api", "prod")

    assert rendered.endswith("      delegateSelectors:\n        - prod-delegate\n")


def test_default_runtime_inputs_shape(config: HarnessConfig) -> None:
    """Test the deployment stage variables and the RFC input stage."""
    config.delegate_selector_template = "{environment}-delegate"

    rendered = yaml.safe_load(render_runtime_inputs(config, "health-action", "qa"))

    template_inputs = rendered["pipeline"]["template"]["templateInputs"]
    initialize, rfc_inputs = (entry["stage"] for entry in template_inputs["stages"])
    assert initialize["identifier"] == "initialize"
    assert initialize["spec"]["service"]["serviceRef"] == "healthaction_svc"
    assert [v["name"] for v in initialize["variables"]] == [
        "ISTIO_CANARY_WEIGHTAGE",
        "HELM_VALUES_FILE_NAME",
        "COOKIE_BASED_TRAFFIC_ROUTING",
    ]
    assert rfc_inputs["identifier"] == "rfc_inputs"
    assert rfc_inputs["type"] == "Custom"
    assert "RFC_NUMBER" in [v["name"] for v in rfc_inputs["variables"]]
    assert template_inputs["delegateSelectors"] == ["qa-delegate"]


def test_custom_runtime_inputs_template(config: HarnessConfig) -> None:
    """Test that the whole YAML body can be replaced from configuration."""
    config.runtime_inputs_template = (
        "pipeline:\n  identifier: {pipeline_id}\n  service: {service_ref}\n"
        "  module: {module}\n  env: {environment}\n"
    )

    rendered = render_runtime_inputs(config, "order-api", "uat")

    assert rendered == (
        "pipeline:\n  identifier: deploy\n  service: orderapi_svc\n"
        "  module: order-api\n  env: uat\n"
    )


def test_runtime_inputs_template_rejects_unknown_placeholder() -> None:
    """Test that an unknown placeholder is a configuration error."""
    with pytest.raises(ValidationError):
        HarnessConfig(runtime_inputs_template="pipeline: {unknown}\n")


@pytest.mark.asyncio
async def test_execute_pipeline(client: HarnessClient) -> None:
    """Test the request and the returned execution URL."""
    with aioresponses() as m:
        m.post(
            EXECUTE_URL,
            payload={"data": {"executionUrl": "https://harness.example.com/exec/9"}},
        )

        url = await client.execute_pipeline("pipeline: {}\n")

        assert url == "https://harness.example.com/exec/9"
        [request] = next(iter(m.requests.values()))
        assert request.kwargs["headers"]["x-api-key"] == "pat-123"
        assert request.kwargs["headers"]["Harness-Account"] == "acct-1"
        assert request.kwargs["params"]["accountIdentifier"] == "acct-1"
        assert request.kwargs["params"]["orgIdentifier"] == "platform"
        assert request.kwargs["params"]["projectIdentifier"] == "web"
        assert request.kwargs["data"] == b"pipeline: {}\n"


@pytest.mark.asyncio
async def test_missing_api_key(config: HarnessConfig) -> None:
    """Test that no request is made without an API key."""
    harness = HarnessClient(config, InMemorySecretStore())

    with aioresponses() as m:
        with pytest.raises(HarnessAuthenticationError):
            await harness.execute_pipeline("pipeline: {}\n")
        assert m.requests == {}

    await harness.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [{"data": {}}, {"data": {"executionUrl": ""}}, {"status": "SUCCESS"}, []],
)
async def test_missing_execution_url(client: HarnessClient, payload: object) -> None:
    """Test that 2xx responses without an execution URL are malformed."""
    with aioresponses() as m:
        m.post(EXECUTE_URL, payload=payload)

        with pytest.raises(HarnessMalformedResponseError):
            await client.execute_pipeline("pipeline: {}\n")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,error_class",
    [
        (401, HarnessAuthenticationError),
        (403, HarnessAuthenticationError),
        (404, HarnessNotFoundError),
        (429, HarnessRateLimitError),
        (503, HarnessServerError),
        (400, HarnessError),
    ],
)
async def test_error_mapping(
    client: HarnessClient, status: int, error_class: type[HarnessError]
) -> None:
    """Test that HTTP errors map to typed exceptions."""
    with aioresponses() as m:
        m.post(EXECUTE_URL, status=status, payload={"message": "nope"})

        with pytest.raises(error_class) as exc_info:
            await client.execute_pipeline("pipeline: {}\n")

    assert exc_info.value.status_code == status
    assert str(exc_info.value) == "nope"
