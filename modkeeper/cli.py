"""
CLI 模块

解析配置档案中的所有模组并报告每个模组被选中的文件，不下载任何内容。
"""

import asyncio
from typing import Optional

import click
from loguru import logger

from modkeeper import __version__
from modkeeper.config import load_config
from modkeeper.exceptions import ModKeeperError
from modkeeper.logger import resolve_level, setup_logger
from modkeeper.models import Profile
from modkeeper.services import ModResolver, ResolutionReport, explain


async def explain_failures(
    resolver: ModResolver, profile: Profile, report: ResolutionReport
):
    """逐个过滤器展示失败模组的匹配情况"""
    for failed in report.failed:
        mod = failed.mod
        if mod.pin is not None:
            continue
        try:
            candidates = await resolver.fetch_candidates(mod)
        except ModKeeperError as e:
            click.echo(f"{mod.name}: {e.message}")
            continue
        click.echo(f"{mod.name} ({len(candidates)} 个候选文件):")
        for item in await explain(
            candidates,
            mod.effective_filters(profile.filters),
            resolver.version_groups,
        ):
            click.echo(f"  {item.filter}: {len(item.matched)} 个匹配")


async def run_async(profile: Profile, max_concurrent: int, show_explain: bool) -> bool:
    """异步运行，返回是否全部成功"""
    logger.info(f"正在解析配置档案 {profile.name} 中的 {len(profile.mods)} 个模组...")
    async with ModResolver() as resolver:
        report = await resolver.resolve_many(
            profile.mods, profile.filters, max_concurrent=max_concurrent
        )
        if show_explain and report.failed:
            await explain_failures(resolver, profile, report)

    logger.info(f"完成: {len(report.resolved)} 个成功, {len(report.failed)} 个失败")
    return report.ok


@click.command()
@click.argument("config", type=click.Path(dir_okay=False), required=False)
@click.option("-p", "--profile", "profile_name", help="配置档案名称（默认为当前档案）")
@click.option("-j", "--max-concurrent", default=5, show_default=True, help="并发数")
@click.option(
    "--explain", "show_explain", is_flag=True, help="展示失败模组的过滤器匹配情况"
)
@click.option("--debug", is_flag=True, help="启用调试模式")
@click.option("-q", "--quiet", is_flag=True, help="只输出警告和错误")
@click.version_option(version=__version__)
def main(
    config: Optional[str],
    profile_name: Optional[str],
    max_concurrent: int,
    show_explain: bool,
    debug: bool,
    quiet: bool,
):
    """ModKeeper - 检查配置档案中每个模组将要下载的文件"""
    setup_logger(level=resolve_level(debug=debug, quiet=quiet))

    try:
        cfg = load_config(config)
        if profile_name:
            profile = cfg.get_profile(profile_name)
        else:
            profile = cfg.get_active_profile()
    except ModKeeperError as e:
        logger.error(f"配置错误: {e}")
        raise click.ClickException(str(e))

    ok = asyncio.run(run_async(profile, max_concurrent, show_explain))
    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
