"""Current time tool."""

from datetime import datetime

from pydantic import BaseModel, Field

from termpilot.tools.base import Tool

NAMED_FORMATS = {
    "human": "%B %d, %Y at %I:%M %p %Z",
    "date": "%Y-%m-%d",
    "time": "%H:%M:%S",
}


class CurrentTimeInput(BaseModel):
    """Input schema for the current time tool."""

    format: str = Field(
        "iso",
        description=(
            "Time format: 'iso' (default), 'human', 'date', 'time', 'unix', "
            "or a strftime pattern such as '%Y-%m-%d %H:%M:%S'"
        ),
    )


class CurrentTimeTool(Tool):
    name = "current_time"
    description = "Get the current date and time"
    input_model = CurrentTimeInput

    async def execute(self, args: CurrentTimeInput) -> str | int:
        now = datetime.now().astimezone()

        if args.format in ("", "iso"):
            return now.isoformat(timespec="seconds")
        if args.format == "unix":
            return int(now.timestamp())

        return now.strftime(NAMED_FORMATS.get(args.format, args.format))
