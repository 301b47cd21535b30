"""Baseline tools — save, update, list, delete, and run visual regressions."""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from src.tools.registry import ToolContext, ToolInput, ToolRegistry

NAME_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


class BaselineArgs(ToolInput):
    name: str = Field("default", pattern=NAME_PATTERN)
    viewport: str = "desktop"
    source: Optional[str] = Field(None, description="Page path or URL; defaults to site_url")


class RegressionArgs(BaselineArgs):
    threshold: Optional[float] = Field(None, ge=0, le=100, description="Allowed diff in percent")
    create_missing: bool = True


class DeleteBaselineArgs(ToolInput):
    name: str = Field(pattern=NAME_PATTERN)
    viewport: str


class NoArgs(ToolInput):
    pass


def register_baseline_tools(registry: ToolRegistry) -> None:
    @registry.register(
        "save_baseline",
        "Capture the page and store it as the named baseline for a viewport",
        BaselineArgs,
    )
    async def save_baseline(ctx: ToolContext, args: BaselineArgs) -> dict:
        update = await ctx.workflow.save_baseline(args.name, args.viewport, args.source)
        return {
            "success": True,
            "baseline": str(update.path),
            "name": args.name,
            "viewport": args.viewport,
            "width": update.entry.width,
            "height": update.entry.height,
            "replaced": update.replaced,
        }

    @registry.register(
        "update_baseline",
        "Replace a baseline with the page's current rendering after reviewing a change",
        BaselineArgs,
    )
    async def update_baseline(ctx: ToolContext, args: BaselineArgs) -> dict:
        update = await ctx.workflow.update_baseline(args.name, args.viewport, args.source)
        verb = "updated" if update.replaced else "created"
        return {
            "success": True,
            "baseline": str(update.path),
            "message": f"Baseline '{args.name}' ({args.viewport}) {verb}",
        }

    @registry.register("list_baselines", "List stored baselines", NoArgs)
    async def list_baselines(ctx: ToolContext, args: NoArgs) -> dict:
        entries = ctx.workflow.list_baselines()
        baselines_dir = ctx.workflow.store.baselines_dir
        return {
            "success": True,
            "baselines": [
                {
                    "name": e.name,
                    "viewport": e.viewport,
                    "path": str(baselines_dir / e.image_path),
                    "width": e.width,
                    "height": e.height,
                    "capturedAt": e.captured_at,
                }
                for e in entries
            ],
            "count": len(entries),
        }

    @registry.register("delete_baseline", "Delete a stored baseline", DeleteBaselineArgs)
    async def delete_baseline(ctx: ToolContext, args: DeleteBaselineArgs) -> dict:
        deleted = ctx.workflow.delete_baseline(args.name, args.viewport)
        if not deleted:
            return {"success": False, "error": f"No baseline found for '{args.name}' ({args.viewport})"}
        return {"success": True, "message": f"Baseline '{args.name}' ({args.viewport}) deleted"}

    @registry.register(
        "visual_regression",
        "Compare the page against its baseline, creating the baseline on first run",
        RegressionArgs,
    )
    async def visual_regression(ctx: ToolContext, args: RegressionArgs) -> dict:
        run = await ctx.workflow.run_regression(
            args.name,
            args.viewport,
            page_source=args.source,
            threshold=args.threshold,
            create_missing=args.create_missing,
        )
        result = run.result
        messages = {
            "baseline_created": "No baseline existed; current capture saved as baseline",
            "identical": "Capture is byte-identical to the baseline",
            "passed": f"{result.diff_percentage:.4f}% of pixels differ (within {result.threshold}%)",
            "failed": f"{result.diff_percentage:.4f}% of pixels differ (exceeds {result.threshold}%)",
        }
        return {
            "success": True,
            "name": run.name,
            "viewport": run.viewport,
            **result.to_output(),
            "baseline": str(run.baseline_path),
            "artifacts": run.artifacts,
            "message": messages[result.status],
        }
