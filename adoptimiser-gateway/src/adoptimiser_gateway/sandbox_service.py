"""
This module provides the preview sandbox service behind ``POST /api/sandbox/graph``.

A preview is built in a fresh e2b sandbox created from a Next.js template (a
pages-router project rooted at ``/home/user`` whose dev server is already
running). The generated component is written into the project, the index page
is replaced by a small importer that renders it, and the public host of the
dev server port is returned. Sandboxes are left to expire on their own
timeout.
"""
import logging
import posixpath
import shlex
from typing import Any, Callable, Optional, Tuple

from e2b_code_interpreter import Sandbox

from adoptimiser_contracts import GraphFragment, SandboxLogs, SandboxSuccess

from .config import PREVIEW_TEMPLATE_ID, PREVIEW_TEMPLATE_NAME, GatewaySettings

LOGGER = logging.getLogger(__name__)

INDEX_PAGE = "pages/index.tsx"

IMPORTER_PAGE = """
import React from 'react';
import {component} from '{import_path}';

export default function PreviewPage() {{
  return (
    <React.StrictMode>
      <{component} />
    </React.StrictMode>
  );
}}
"""


class SandboxConfigurationError(RuntimeError):
    """The sandbox service has no API key."""


SandboxFactory = Callable[[str, int, str], Any]


def _default_sandbox_factory(template: str, timeout: int, api_key: str) -> Any:
    return Sandbox.create(template=template, timeout=timeout, api_key=api_key)


def normalize_file_path(file_path: Optional[str], default: str) -> str:
    """Makes a fragment path relative to the project root (no ``src/``, no leading ``/``)."""
    path = file_path or default
    if path.startswith("src/"):
        path = path[len("src/"):]
    return path.lstrip("/")


def importer_for(relative_path: str) -> Tuple[str, str]:
    """
    Returns ``(component_name, page_source)`` for an index page rendering the
    component at ``relative_path`` through the template's ``@/`` alias.
    """
    stem, _ext = posixpath.splitext(relative_path)
    component = posixpath.basename(stem)
    source = IMPORTER_PAGE.format(component=component, import_path=f"@/{stem}")
    return component, source


class PreviewSandboxService:
    """
    Builds live previews of generated components.

    Args:
        settings: Gateway settings (API key, template, project root, timeout).
        sandbox_factory: Creates a sandbox from ``(template, timeout, api_key)``;
            tests pass a fake.
    """

    def __init__(self, settings: GatewaySettings, sandbox_factory: Optional[SandboxFactory] = None):
        self.settings = settings
        self._sandbox_factory = sandbox_factory or _default_sandbox_factory

    @property
    def configured(self) -> bool:
        return bool(self.settings.e2b_api_key)

    def resolve_template(self, requested: Optional[str]) -> str:
        """The preview template is the only supported one; anything else is overridden."""
        template = requested or self.settings.sandbox_template_id
        if template not in (self.settings.sandbox_template_id, PREVIEW_TEMPLATE_ID, PREVIEW_TEMPLATE_NAME):
            LOGGER.warning(
                "Template %r is not the preview template; using %r instead",
                template,
                self.settings.sandbox_template_id,
            )
            return self.settings.sandbox_template_id
        return template

    def preview(self, fragment: GraphFragment) -> SandboxSuccess:
        """
        Creates a sandbox running ``fragment`` and returns its preview URL.

        Raises:
            SandboxConfigurationError: No API key is configured.
            RuntimeError: The sandbox exposes no host for the preview port.
            Exception: Any failure raised by the sandbox SDK.
        """
        if not self.configured:
            raise SandboxConfigurationError("Sandbox feature is not configured (missing API key).")

        s = self.settings
        template = self.resolve_template(fragment.template)
        relative_path = normalize_file_path(fragment.file_path, s.sandbox_default_file_path)
        root = s.sandbox_project_root.rstrip("/")
        absolute_path = f"{root}/{relative_path}"
        port = fragment.port or s.sandbox_default_port

        LOGGER.info("Creating sandbox with template %s", template)
        sandbox = self._sandbox_factory(template, s.sandbox_timeout_seconds, s.e2b_api_key)

        logs = SandboxLogs()
        directory = posixpath.dirname(absolute_path)
        if directory and directory not in (root, f"{root}/", "."):
            LOGGER.info("Ensuring directory exists: %s", directory)
            output = sandbox.commands.run(f"mkdir -p {shlex.quote(directory)}")
            logs = SandboxLogs(mkdir_stdout=output.stdout, mkdir_stderr=output.stderr)
            if output.stderr:
                LOGGER.warning("mkdir -p stderr for %s: %s", directory, output.stderr)

        LOGGER.info("Writing fragment code to %s", absolute_path)
        sandbox.files.write(absolute_path, fragment.code)

        if relative_path.lower() != INDEX_PAGE:
            component, page = importer_for(relative_path)
            LOGGER.info("Pointing %s at component %s", INDEX_PAGE, component)
            sandbox.files.write(f"{root}/{INDEX_PAGE}", page)

        host = sandbox.get_host(port)
        if not host:
            raise RuntimeError(f"Sandbox hostname could not be determined for port {port}.")

        url = f"https://{host}"
        LOGGER.info("Sandbox %s preview at %s", sandbox.sandbox_id, url)
        return SandboxSuccess(url=url, code=fragment.code, sandbox_id=sandbox.sandbox_id, logs=logs)
