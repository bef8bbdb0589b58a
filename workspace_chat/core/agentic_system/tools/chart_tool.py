"""
Chart generation tool.

Produces a chart specification the client renders as a visualization
artifact. No external service is involved.

Dependencies: langchain_core.tools, pydantic
System role: Visualization artifact producer
"""

from typing import Literal

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from workspace_chat.models.tools import ToolArtifact


class ChartSeries(BaseModel):
    name: str = Field(description="Series label shown in the legend")
    values: list[float] = Field(description="One value per label")


def create_chart_tool() -> BaseTool:
    """Create the chart_gen tool."""

    @tool("chart_gen", response_format="content_and_artifact")
    async def chart_gen(
        title: str,
        chart_type: Literal["bar", "line", "pie", "area"],
        labels: list[str],
        series: list[ChartSeries],
    ) -> tuple[str, ToolArtifact]:
        """Create a chart to visualize numeric data for the user.

        Args:
            title: Chart title
            chart_type: One of bar, line, pie, area
            labels: Category or x-axis labels
            series: Data series, each with one value per label
        """
        parsed = [ChartSeries.model_validate(item) for item in series]
        if not labels or not parsed:
            raise ValueError("A chart needs at least one label and one series")
        for item in parsed:
            if len(item.values) != len(labels):
                raise ValueError(
                    f"Series '{item.name}' has {len(item.values)} values for {len(labels)} labels"
                )
        if chart_type == "pie" and len(parsed) > 1:
            raise ValueError("Pie charts take exactly one series")

        data = {
            "chartType": chart_type,
            "title": title,
            "labels": labels,
            "series": [item.model_dump() for item in parsed],
        }
        content = f"Created {chart_type} chart '{title}' with {len(labels)} labels and {len(parsed)} series."
        return content, ToolArtifact(kind="visualization", data=data)

    return chart_gen
