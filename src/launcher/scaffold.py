"""
Renders the container files for a Next.js app that is started by the launcher:

Dockerfile          installs dependencies and sources, leaves the build to container start
docker-compose.yml  publishes port 3000 and mounts the operator's .env at /app/.env

The build runs at container start so that NEXT_PUBLIC_* values from the mounted .env are
inlined into the client bundle.
"""

import logging
import os
import os.path
from typing import Dict, List

import yaml

from . import config

DOCKERFILE_NAME = "Dockerfile"
COMPOSE_FILE_NAME = "docker-compose.yml"
DEFAULT_NODE_IMAGE = "node:18-slim"
DEFAULT_LAUNCHER_REQUIREMENT = "next-runtime-launcher"
LAUNCHER_VENV = "/opt/launcher"

DOCKERFILE_TEMPLATE = """\
FROM {node_image}

RUN apt-get update \\
    && apt-get install -y --no-install-recommends python3 python3-venv \\
    && rm -rf /var/lib/apt/lists/*
RUN python3 -m venv {venv} && {venv}/bin/pip install --no-cache-dir {launcher_requirement}

WORKDIR {app_dir}
COPY package*.json ./
RUN if [ -f package-lock.json ]; then npm ci; else npm install; fi
COPY . .

EXPOSE {port}
ENTRYPOINT ["{venv}/bin/launcher", "run"]
"""


def render_dockerfile(
    node_image: str = DEFAULT_NODE_IMAGE,
    launcher_requirement: str = DEFAULT_LAUNCHER_REQUIREMENT,
    port: int = config.DEFAULT_PORT,
) -> str:
    return DOCKERFILE_TEMPLATE.format(
        node_image=node_image,
        venv=LAUNCHER_VENV,
        launcher_requirement=launcher_requirement,
        app_dir=config.DEFAULT_APP_DIR,
        port=port,
    )


def compose_document(service_name: str, port: int = config.DEFAULT_PORT) -> Dict:
    return {
        "services": {
            service_name: {
                "build": ".",
                "ports": [f"{port}:{port}"],
                "volumes": [f"./.env:{config.DEFAULT_APP_DIR}/.env:ro"],
                "restart": "unless-stopped",
            }
        }
    }


def render_compose(service_name: str, port: int = config.DEFAULT_PORT) -> str:
    return yaml.safe_dump(compose_document(service_name, port), sort_keys=False)


def write_templates(
    output_dir: str,
    service_name: str,
    node_image: str = DEFAULT_NODE_IMAGE,
    launcher_requirement: str = DEFAULT_LAUNCHER_REQUIREMENT,
    port: int = config.DEFAULT_PORT,
    overwrite: bool = False,
) -> List[str]:
    """Writes the Dockerfile and compose file into output_dir and returns their paths."""
    contents = {
        DOCKERFILE_NAME: render_dockerfile(node_image, launcher_requirement, port),
        COMPOSE_FILE_NAME: render_compose(service_name, port),
    }

    paths = [os.path.join(output_dir, filename) for filename in contents]
    existing = [path for path in paths if os.path.exists(path)]
    if existing and not overwrite:
        raise ValueError("Refusing to overwrite existing files", existing)

    os.makedirs(output_dir, exist_ok=True)
    for path, content in zip(paths, contents.values()):
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        logging.info("Wrote %r", path)
    return paths
