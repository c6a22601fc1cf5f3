"""
This module defines the configuration settings for the Ad Optimiser gateway.

It uses Pydantic's `BaseSettings` so every setting can be supplied through an
environment variable of the same name (``NEO4J_URI``, ``E2B_API_KEY``,
``GATEWAY_PORT`` and so on). Missing credentials are not an error at startup:
the affected route reports the problem when it is called.
"""
from typing import Optional

from pydantic_settings import BaseSettings

from adoptimiser_contracts import DEFAULT_SANDBOX_PORT

PREVIEW_TEMPLATE_ID = "hgggu04t2bp3hyy3wktz"
PREVIEW_TEMPLATE_NAME = "chatbot-ui-nextjs-preview"


class GatewaySettings(BaseSettings):
    """
    Configuration model for the gateway service.

    Attributes:
        gateway_port: The port on which the gateway listens.
        neo4j_uri: Bolt URI of the graph database.
        neo4j_username: Graph database user.
        neo4j_password: Graph database password.
        e2b_api_key: API key for the e2b sandbox service; the sandbox route
                     answers 503 without it.
        sandbox_template_id: Template every preview sandbox is created from.
        sandbox_project_root: Root of the Next.js project inside the template.
        sandbox_timeout_seconds: Lifetime of a preview sandbox.
        sandbox_default_file_path: Component path used when a fragment has none.
        sandbox_default_port: Preview server port used when a fragment has none.
        expose_stack: Include tracebacks in sandbox error bodies (development).
    """

    # Server
    gateway_port: int = 3000

    # Graph database
    neo4j_uri: Optional[str] = None
    neo4j_username: Optional[str] = None
    neo4j_password: Optional[str] = None

    # Preview sandbox
    e2b_api_key: Optional[str] = None
    sandbox_template_id: str = PREVIEW_TEMPLATE_ID
    sandbox_project_root: str = "/home/user"
    sandbox_timeout_seconds: int = 10 * 60
    sandbox_default_file_path: str = "components/GeneratedPreview.tsx"
    sandbox_default_port: int = DEFAULT_SANDBOX_PORT

    expose_stack: bool = False

    class Config:
        env_prefix = ""  # allow direct env var mapping
