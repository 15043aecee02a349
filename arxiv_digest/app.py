"""Typer CLI entrypoint for arxiv-digest."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Awaitable, Callable, List, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from typer import BadParameter

from .config import ConfigRepository
from .engine import DateWindow, Paper
from .infra import DigestStore, SQLiteManager, TagStore
from .logging_conf import available_logs, configure_logging, tail_log
from .orchestrator import Orchestrator, PipelineResult

app = typer.Typer(
    help="arxiv-digest 命令行工具",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="日志查看命令",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    orchestrator: Orchestrator
    storage: SQLiteManager


def _parse_day_option(value: Optional[str], option_name: str) -> date | None:
    if value is None:
        return None
    text = value.strip()
    if not text:
        raise BadParameter(f"{option_name} 不能为空。")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise BadParameter(f"{option_name} 需使用 YYYY-MM-DD 格式，例如 2024-10-14。") from exc


def _resolve_window(start: Optional[str], end: Optional[str]) -> DateWindow:
    today = datetime.now(timezone.utc).date()
    end_day = _parse_day_option(end, "--end") or today
    start_day = _parse_day_option(start, "--start") or end_day - timedelta(days=1)
    if end_day < start_day:
        raise BadParameter("--end 不能早于 --start。")
    return DateWindow(start=start_day, end=end_day)


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    storage = SQLiteManager()
    store_path = repository.store_path()
    orchestrator = Orchestrator(
        config=global_config,
        tag_store=TagStore(storage, store_path),
        digest_store=DigestStore(storage, store_path),
    )
    return AppState(repository=repository, orchestrator=orchestrator, storage=storage)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _execute(
    state: AppState, run: Callable[[Orchestrator], Awaitable[PipelineResult]]
) -> PipelineResult:
    async def _main() -> PipelineResult:
        try:
            return await run(state.orchestrator)
        finally:
            await state.orchestrator.aclose()

    return asyncio.run(_main())


def _render_papers_table(title: str, papers: Sequence[Paper], show_relevance: bool = False) -> Table:
    table = Table(title=f"{title} · 共 {len(papers)} 篇", box=box.SIMPLE_HEAD)
    table.add_column("发布日期", style="green", no_wrap=True)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("分类", style="magenta", no_wrap=True)
    table.add_column("标题", overflow="fold")
    if show_relevance:
        table.add_column("相关度", style="yellow", justify="right")
        table.add_column("理由", style="dim", overflow="fold")
    for paper in papers:
        row = [
            paper.published.strftime("%Y-%m-%d"),
            paper.id,
            paper.category,
            paper.title,
        ]
        if show_relevance:
            score = paper.relevancy_score
            row.extend(["-" if score is None else f"{score:g}", paper.reason or ""])
        table.add_row(*row)
    return table


def _report(result: PipelineResult, title: str, as_json: bool, show_relevance: bool = False) -> None:
    if result.cancelled:
        raise typer.Exit(code=0)
    if result.error:
        console.print(result.error, style="red")
        raise typer.Exit(code=1)
    if as_json:
        typer.echo(json.dumps([paper.to_dict() for paper in result.papers], ensure_ascii=False, indent=2))
        return
    if not result.papers:
        console.print("没有找到符合条件的论文。", style="yellow")
        return
    console.print(_render_papers_table(title, result.papers, show_relevance))


JsonOption = Annotated[bool, typer.Option("--json", help="以 JSON 输出结果。", is_flag=True)]
StartOption = Annotated[
    Optional[str],
    typer.Option("--start", help="起始日期（UTC，YYYY-MM-DD，默认为结束日期前一天）。", metavar="DAY"),
]
EndOption = Annotated[
    Optional[str],
    typer.Option("--end", help="结束日期（UTC，YYYY-MM-DD，默认今天）。", metavar="DAY"),
]


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="开启调试日志", is_flag=True)
) -> None:
    ctx.obj = build_state(verbose)


@app.command("search", help="按检索式与提交日期范围查询 arXiv。")
def search(
    ctx: typer.Context,
    expression: Optional[str] = typer.Argument(None, help="arXiv 检索式（留空使用默认检索式）。"),
    start: StartOption = None,
    end: EndOption = None,
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    window = _resolve_window(start, end)
    result = _execute(state, lambda orchestrator: orchestrator.search(expression, window))
    _report(result, "检索结果", as_json)


@app.command("title", help="按标题片段查询 arXiv。")
def title(
    ctx: typer.Context,
    term: str = typer.Argument(..., help="标题中包含的文字。"),
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    result = _execute(state, lambda orchestrator: orchestrator.search_title(term))
    _report(result, "标题检索", as_json)


@app.command("keywords", help="按关键词（全部命中）查询 arXiv。")
def keywords(
    ctx: typer.Context,
    words: List[str] = typer.Argument(..., help="一个或多个关键词。"),
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    result = _execute(state, lambda orchestrator: orchestrator.search_keywords(words))
    _report(result, "关键词检索", as_json)


@app.command("tagged", help="列出带有指定标签的论文（包含日期范围之外的论文）。")
def tagged(
    ctx: typer.Context,
    tag: str = typer.Argument(..., help="标签名称。"),
    user: str = typer.Option(..., "--user", help="标签所属用户 ID。"),
    expression: Optional[str] = typer.Option(None, "--query", help="先执行的检索式（留空使用默认检索式）。"),
    start: StartOption = None,
    end: EndOption = None,
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    window = _resolve_window(start, end)

    async def _run(orchestrator: Orchestrator) -> PipelineResult:
        primary = await orchestrator.search(expression, window)
        if not primary.ok:
            return primary
        return await orchestrator.filter_by_tag(primary.papers, tag, user)

    result = _execute(state, _run)
    _report(result, f"标签 · {tag}", as_json)


@app.command("daily", help="抓取 Hugging Face 每日论文并补全 arXiv 元数据。")
def daily(
    ctx: typer.Context,
    day: Optional[str] = typer.Option(None, "--date", help="日期（YYYY-MM-DD，默认今天）。", metavar="DAY"),
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    target = _parse_day_option(day, "--date") or datetime.now(timezone.utc).date()
    result = _execute(state, lambda orchestrator: orchestrator.daily(target))
    _report(result, f"每日论文 · {target.isoformat()}", as_json)


@app.command("digest", help="按相关度展示摘要任务的结果。")
def digest(
    ctx: typer.Context,
    digest_id: str = typer.Argument(..., help="摘要任务 ID。"),
    as_json: JsonOption = False,
) -> None:
    state = _get_state(ctx)
    result = _execute(state, lambda orchestrator: orchestrator.digest(digest_id))
    _report(result, f"摘要 · {digest_id}", as_json, show_relevance=True)


@log_app.command("list", help="列出可用的日志文件。")
def log_list() -> None:
    paths = list(available_logs())
    if not paths:
        console.print("暂无日志文件。", style="yellow")
        return
    for path in paths:
        console.print(path.name)


@log_app.command("show", help="查看指定日志的最近内容。")
def log_show(
    name: str = typer.Argument("digest.log", help="日志文件名。"),
    lines: int = typer.Option(50, "--lines", "-n", help="显示的行数。"),
) -> None:
    matches = [path for path in available_logs() if path.name == name]
    if not matches:
        console.print(f"未找到日志 `{name}`。", style="red")
        raise typer.Exit(code=1)
    for line in tail_log(matches[0], lines):
        typer.echo(line.rstrip("\n"))


app.add_typer(log_app, name="log", help="查看日志文件")


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
