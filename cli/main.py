import asyncio
import json

import httpx
import typer
import uvicorn
from websockets.asyncio.client import connect

from backend.app.config import settings
from backend.app.services.realtime import RealtimeMirror

app = typer.Typer(help="AgentDeck - coding tasks in, LLM output and GitHub commits out")

USER_OPTION = typer.Option(..., "--user", "-u", envvar="AGENTDECK_USER_ID", help="Your user id")
URL_OPTION = typer.Option(settings.api_url, "--url", help="AgentDeck server URL")


def _api_client(base_url: str, user_id: str) -> httpx.Client:
    return httpx.Client(base_url=base_url, headers={"X-User-Id": user_id}, timeout=300.0)


def _check(response: httpx.Response) -> dict:
    if response.is_error:
        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        typer.secho(f"Error ({response.status_code}): {detail}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return response.json()


def _format_stats(mirror: RealtimeMirror) -> str:
    s = mirror.stats
    return (
        f"completed={s.completed} failed={s.failed} running={s.running} "
        f"cost=${s.estimated_cost:.4f} agents={len(mirror.agents)} tasks={len(mirror.tasks)}"
    )


@app.command()
def start(
    host: str = typer.Option(settings.host, help="Bind address"),
    port: int = typer.Option(settings.port, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload on code changes"),
) -> None:
    """Start the AgentDeck server."""
    typer.echo("Starting AgentDeck...")
    uvicorn.run("backend.app.main:app", host=host, port=port, reload=reload)


@app.command()
def submit(
    title: str = typer.Argument(..., help="Short task title"),
    description: str = typer.Argument(..., help="What should be built"),
    priority: str = typer.Option("medium", help="low, medium or high"),
    process: bool = typer.Option(False, "--process", help="Run the task right away"),
    generate: bool = typer.Option(False, "--generate", help="Also generate code files"),
    user: str = USER_OPTION,
    url: str = URL_OPTION,
) -> None:
    """Submit a task and optionally process it and generate code."""
    with _api_client(url, user) as client:
        task = _check(
            client.post(
                "/api/tasks",
                json={"title": title, "description": description, "priority": priority},
            )
        )
        typer.echo(f"Task {task['id']} submitted ({task['status']})")

        if process or generate:
            result = _check(client.post(f"/api/tasks/{task['id']}/process"))
            task = _check(client.get(f"/api/tasks/{task['id']}"))
            typer.echo(f"Processed by agent {result['agent_id']}: {task['status']}")

        if generate and task["status"] == "completed":
            generated = _check(client.post(f"/api/tasks/{task['id']}/generate"))
            for f in generated["files"]:
                typer.echo(f"  {f['filepath']} ({f['language']})")
            typer.echo(generated["explanation"])


@app.command()
def commit(
    task_id: str = typer.Argument(..., help="Task whose draft files to commit"),
    message: str | None = typer.Option(None, "--message", "-m", help="Commit message"),
    user: str = USER_OPTION,
    url: str = URL_OPTION,
) -> None:
    """Commit a task's draft files to the linked GitHub repository."""
    with _api_client(url, user) as client:
        result = _check(
            client.post(f"/api/tasks/{task_id}/commit", json={"commit_message": message})
        )
    typer.echo(f"Committed {result['files_committed']} files: {result['commit_sha']}")
    if result.get("commit_url"):
        typer.echo(result["commit_url"])


@app.command("link-repo")
def link_repo(
    repo_name: str = typer.Argument(..., help="owner/repo"),
    token: str = typer.Option(..., prompt=True, hide_input=True, help="GitHub access token"),
    branch: str = typer.Option("main", help="Branch to commit to"),
    user: str = USER_OPTION,
    url: str = URL_OPTION,
) -> None:
    """Link (or re-link) your GitHub repository."""
    with _api_client(url, user) as client:
        link = _check(
            client.put(
                "/api/github/repo",
                json={"repo_name": repo_name, "access_token": token, "default_branch": branch},
            )
        )
    typer.echo(f"Linked {link['repo_url']} ({link['default_branch']})")


async def _watch(ws_url: str) -> None:
    mirror = RealtimeMirror()
    async with connect(ws_url) as ws:
        async for raw in ws:
            if mirror.handle(json.loads(raw)):
                typer.echo(_format_stats(mirror))


@app.command()
def watch(user: str = USER_OPTION, url: str = URL_OPTION) -> None:
    """Follow the live dashboard feed and print statistics on every change."""
    ws_url = url.replace("http://", "ws://").replace("https://", "wss://").rstrip("/")
    try:
        asyncio.run(_watch(f"{ws_url}/ws?user_id={user}"))
    except KeyboardInterrupt:
        typer.echo("Stopped watching.")


if __name__ == "__main__":
    app()
