import sys
from io import TextIOWrapper
from typing import TextIO

from xray.models import BaseEvent, CustomEvent, DecisionEvent, HTTPEvent, LLMEvent
from xray.transports.base import BaseTransport


class TerminalTransport(BaseTransport):
    """Writes a one-line summary of each event to a stream, for local development."""

    def __init__(self, show_data: bool = True, output: TextIO | TextIOWrapper | None = None):
        self.show_data = show_data
        self.output = output or sys.stdout

    async def send(self, event: BaseEvent) -> None:
        ts = event.timestamp.strftime("%H:%M:%S")
        line = f"[{ts}] {event.event_type.upper()}"

        match event:
            case DecisionEvent(decision=decision):
                line += (
                    f" {decision.input_count} -> {decision.output_count}"
                    f" ({decision.drop_rate_percent}% dropped)"
                )
                if self.show_data and decision.dropped:
                    reasons = ", ".join(f"{d.reason}={d.count}" for d in decision.dropped)
                    line += f" | dropped: {reasons}"
            case LLMEvent(model=model, input=llm_input, output=llm_output, reasoning=reasoning):
                line += (
                    f" {model.provider}/{model.name}"
                    f" ({llm_input.input_tokens} in, {llm_output.output_tokens} out)"
                )
                if self.show_data:
                    line += f" | {reasoning.summary}"
            case HTTPEvent(request=request, response=response):
                line += f" {request.method} {request.url} -> {response.status}"
            case CustomEvent(data=data) if self.show_data and data:
                # trace_id is already shown in the suffix
                items = [f"{key}={value}" for key, value in data.items() if key != "trace_id"]
                if items:
                    line += f" | {', '.join(items)}"

        line += f" ({event.duration_ms}ms, trace={event.trace_id}"
        if event.service:
            line += f", service={event.service}"
        line += ")"

        self.output.write(line + "\n")
        self.output.flush()
