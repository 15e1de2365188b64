import yaml

from launcher import scaffold


def test_render_dockerfile():
    dockerfile = scaffold.render_dockerfile(
        node_image="node:20-slim", launcher_requirement="next-runtime-launcher==0.1.0", port=4000
    )
    lines = dockerfile.splitlines()
    assert lines[0] == "FROM node:20-slim"
    assert "WORKDIR /app" in lines
    assert "EXPOSE 4000" in lines
    assert any("pip install --no-cache-dir next-runtime-launcher==0.1.0" in line for line in lines)
    # no build at image time, it happens at container start with the runtime variables
    assert "RUN npm run build" not in dockerfile


def test_render_compose():
    compose = yaml.safe_load(scaffold.render_compose("web"))
    assert compose == {
        "services": {
            "web": {
                "build": ".",
                "ports": ["3000:3000"],
                "volumes": ["./.env:/app/.env:ro"],
                "restart": "unless-stopped",
            }
        }
    }


def test_write_templates(tmp_path):
    paths = scaffold.write_templates(str(tmp_path), "web")
    assert {path.rsplit("/", 1)[-1] for path in paths} == {
        scaffold.COMPOSE_FILE_NAME,
        scaffold.DOCKERFILE_NAME,
    }
    assert (tmp_path / scaffold.DOCKERFILE_NAME).read_text() == scaffold.render_dockerfile()


def test_render_dockerfile_installs_without_lockfile():
    dockerfile = scaffold.render_dockerfile()
    assert "RUN if [ -f package-lock.json ]; then npm ci; else npm install; fi" in dockerfile.splitlines()
