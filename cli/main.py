"""CLI entry point: spider-novel 小说站点爬虫。

用法：
  spider-novel categories             抓取（或读取缓存的）分类
  spider-novel novels 123 -p 1..5     按分类抓取小说列表
  spider-novel sections 456 -p full   抓取章节正文
  spider-novel novel 456              查看单本小说详情
  spider-novel search 书名            搜索小说
  spider-novel keep                   启动定时巡检
  spider-novel --help                 查看所有命令
"""

import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Ensure UTF-8 output on Windows to avoid GBK encoding errors with Rich
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

import click

from adapters import ADAPTERS, get_adapter
from cli.theme import (
    app_header,
    command_panel,
    error_line,
    get_console,
    novel_panel,
    novel_row,
    novels_table,
    sorts_table,
    success_panel,
    sweep_table,
)
from config.exceptions import InvalidPosition, SpiderError
from config.logging_config import setup_logging
from config.settings import Settings
from crawler.keeper import Keeper, KeeperPolicy
from crawler.site_spider import SiteSpider
from models.database import Database
from models.position import Position
from models.section import Section
from models.sort import SortEntity
from tools.http_client import HttpClient
from tools.idgen import SnowflakeIdGenerator

console = get_console()


def _init_logging(verbose: bool, settings: Settings):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def _open_database(settings: Settings) -> Database:
    ids = SnowflakeIdGenerator(settings.machine_id, settings.node_id)
    return Database(settings.sqlite_db_path, ids)


@asynccontextmanager
async def _spider(site: str, settings: Settings):
    """Yield a ready SiteSpider; closes its HTTP client and waits for crawls on exit."""
    db = _open_database(settings)
    async with HttpClient(settings) as http:
        spider = SiteSpider(get_adapter(site), db, http, settings)
        try:
            yield spider
        finally:
            await spider.aclose()


def _parse_position(ctx, param, value):
    try:
        return Position.parse(value)
    except InvalidPosition as e:
        raise click.BadParameter(str(e)) from e


def _run(coro):
    """Run a command coroutine, turning spider errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except SpiderError as e:
        console.print(f"[error]{e}[/]")
        sys.exit(1)


_site_option = click.option(
    "--site", "-s",
    default="ddxsku",
    show_default=True,
    type=click.Choice(sorted(ADAPTERS)),
    help="目标站点",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose):
    """spider-novel: 按页码定位、顺序输出的小说站点爬虫

    \b
    位置参数（-p/--position）格式：
      first     仅第一页 / 第一章
      last      仅最后一页 / 最后一章
      full      全部
      5         指定第 5 页 / 第 5 章（从 1 开始）
      2..6      第 2 到第 5（不含 6）
    """
    settings = Settings()
    _init_logging(verbose, settings)
    ctx.obj = settings


# ---------------------------------------------------------------------------
# categories command
# ---------------------------------------------------------------------------

@cli.command()
@_site_option
@click.option("--cached", is_flag=True, help="仅读取本地缓存的分类，不访问站点")
@click.option(
    "--set", "entries",
    multiple=True,
    metavar="NAME=LINK",
    help="用给定分类替换本地分类（可多次指定，LINK 可含 {{page}}）",
)
@click.pass_obj
def categories(settings, site, cached, entries):
    """抓取并保存站点分类。

    示例：
      spider-novel categories
      spider-novel categories --set "全部分类=http://www.ddxsku.com/top/lastupdate_{{page}}.html"
    """
    entities = []
    for entry in entries:
        name, sep, link = entry.partition("=")
        if not sep or not name or not link:
            raise click.BadParameter(f"需要 NAME=LINK 格式: {entry}", param_hint="--set")
        entities.append(SortEntity(name=name.strip(), link=link.strip()))

    async def _categories():
        async with _spider(site, settings) as spider:
            if entities:
                return await spider.set_categories(entities)
            if cached:
                return await spider.load_categories()
            return await spider.categories()

    sorts = _run(_categories())
    console.print(app_header())
    if not sorts:
        console.print("[warning]没有分类。去掉 --cached 重新抓取，或使用 --set 指定。[/]")
        return
    console.print(sorts_table(sorts))


# ---------------------------------------------------------------------------
# novels command
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("category_id", type=int)
@_site_option
@click.option("--position", "-p", default="first", show_default=True,
              callback=_parse_position, help="要抓取的列表页")
@click.option("--limit", "-l", default=0, type=int, help="最多输出多少本（0 表示不限）")
@click.pass_obj
def novels(settings, category_id, site, position, limit):
    """抓取一个分类下的小说（按页顺序输出）。

    示例：
      spider-novel novels 6953631192986030081 -p 1..10
    """
    console.print(app_header())
    console.print(command_panel("抓取小说列表", {"站点": site, "分类": str(category_id), "位置": str(position)}))

    async def _novels():
        table = novels_table()
        errors = []
        count = 0
        async with _spider(site, settings) as spider:
            channel = await spider.novels_by_category(category_id, position)
            try:
                async for item in channel:
                    if isinstance(item, SpiderError):
                        errors.append(item)
                        continue
                    table.add_row(*novel_row(item))
                    count += 1
                    if limit and count >= limit:
                        break
            finally:
                channel.close()
        return table, count, errors

    table, count, errors = _run(_novels())
    console.print(table)
    for error in errors:
        console.print(error_line(error))
    console.print(f"[muted]共 {count} 本，{len(errors)} 个错误[/]")


# ---------------------------------------------------------------------------
# sections command
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("novel_id", type=int)
@_site_option
@click.option("--position", "-p", default="full", show_default=True,
              callback=_parse_position, help="要抓取的章节")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="把正文按顺序写入文件")
@click.pass_obj
def sections(settings, novel_id, site, position, output):
    """抓取小说章节正文，按目录顺序输出。

    示例：
      spider-novel sections 456 -p 1..21 -o book.txt
    """
    console.print(app_header())

    async def _sections():
        handle = output.open("w", encoding="utf-8") if output else None

        def _on_section(section: Section):
            _print_section(section)
            if handle:
                handle.write(f"{section.name}\n\n{section.text}\n\n")

        try:
            async with _spider(site, settings) as spider:
                return await consume_sections(spider, novel_id, position, _on_section)
        finally:
            if handle:
                handle.close()

    fetched, failed = _run(_sections())
    body = f"成功 {fetched} 章，失败 {failed} 章"
    if output:
        body += f"\n已写入 {output}"
    console.print(success_panel("抓取完成", body))


async def consume_sections(spider, novel_id: int, position: Position, on_section) -> tuple[int, int]:
    """Drain a chapter stream into `on_section`; returns (fetched, failed).

    The channel is closed on every exit so the background crawl can finish
    even when `on_section` raises.
    """
    fetched = 0
    failed = 0
    channel = await spider.sections_by_novel(novel_id, position)
    try:
        async for item in channel:
            if isinstance(item, SpiderError):
                failed += 1
                console.print(error_line(item))
                continue
            fetched += 1
            on_section(item)
    finally:
        channel.close()
    return fetched, failed


def _print_section(section: Section):
    console.print(
        f"[novel.id]#{section.seq + 1:>5}[/] {section.name} "
        f"[muted]({len(section.text)} 字)[/]"
    )


# ---------------------------------------------------------------------------
# novel / search commands
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("novel_id", type=int)
@_site_option
@click.pass_obj
def novel(settings, novel_id, site):
    """查看单本小说的最新信息。"""

    async def _novel():
        async with _spider(site, settings) as spider:
            return await spider.fetch_novel(novel_id)

    console.print(novel_panel(_run(_novel())))


@cli.command()
@click.argument("name")
@_site_option
@click.option("--author", "-a", default=None, help="同时匹配作者（精确搜索）")
@click.pass_obj
def search(settings, name, site, author):
    """按书名搜索小说。

    示例：
      spider-novel search 诡秘之主
      spider-novel search 诡秘之主 -a 爱潜水的乌贼
    """

    async def _search():
        async with _spider(site, settings) as spider:
            if author:
                found = await spider.exact_search(name, author)
                return [found] if found else []
            return await spider.search(name)

    results = _run(_search())
    if not results:
        console.print(f"[warning]没有找到「{name}」[/]")
        return
    table = novels_table(title=f"搜索：{name}")
    for n in results:
        table.add_row(*novel_row(n))
    console.print(table)


# ---------------------------------------------------------------------------
# keep command
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--site", "-s", "sites", multiple=True, type=click.Choice(sorted(ADAPTERS)),
              help="参与巡检的站点（默认全部）")
@click.option("--sweeps", default=0, type=int, help="巡检次数（0 表示一直运行）")
@click.option("--position", "-p", default=None, help="每个分类抓取的列表页（默认读取配置）")
@click.pass_obj
def keep(settings, sites, sweeps, position):
    """定时巡检所有站点：刷新分类，按分类抓取小说。"""
    policy = KeeperPolicy.from_settings(settings)
    if position:
        policy.position = _parse_position(None, None, position)
    sites = sites or tuple(sorted(ADAPTERS))

    console.print(app_header())
    console.print(command_panel("巡检", {
        "站点": ", ".join(sites),
        "位置": str(policy.position),
        "间隔": f"{policy.sweep_interval:.0f}s",
        "次数": str(sweeps or "不限"),
    }))

    async def _keep():
        db = _open_database(settings)
        async with HttpClient(settings) as http:
            spiders = [SiteSpider(get_adapter(site), db, http, settings) for site in sites]
            keeper = Keeper(policy)
            for spider in spiders:
                keeper.add_spider(spider)
            try:
                return await keeper.run(max_sweeps=sweeps or None)
            finally:
                for spider in spiders:
                    await spider.aclose()

    try:
        reports = _run(_keep())
    except KeyboardInterrupt:
        console.print("[warning]巡检已中断[/]")
        return
    console.print(sweep_table(reports))


if __name__ == "__main__":
    cli()
