from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..core.errors import EngineError
from ..core.models import ActionKind, NodeState, ScenarioNode, ScenarioState
from ..dynamic.builder import legal_actions, node_state

_STATE_STYLE = {
    NodeState.ACTIVE: "bold green",
    NodeState.WAITING: "dim",
    NodeState.FOLDED: "red",
    NodeState.CALLED: "cyan",
    NodeState.CHECKED: "cyan",
    NodeState.LIMPED: "yellow",
    NodeState.SUPERSEDED: "dim strike",
}


def _sizing_text(node: ScenarioNode) -> str:
    if node.sizing is None:
        return ""
    return f" {node.sizing:g}bb"


class RichPresenter:
    def __init__(self, *, no_color: bool = False, console: Console | None = None) -> None:
        if console is not None:
            self.console = console
        elif no_color:
            self.console = Console(force_terminal=False, color_system=None)
        else:
            self.console = Console()

    def _label(self, state: ScenarioState, node: ScenarioNode) -> str:
        status = node_state(state, node.id)
        style = _STATE_STYLE.get(status, "bold magenta")
        role = "[bold]Hero[/] " if node.is_hero else ""
        text = f"{role}[bold]{node.position.value}[/] [{style}]{status.value}{_sizing_text(node)}[/]"
        if node.is_automatic:
            text += " [dim](auto)[/]"
        if node.range_id:
            text += f" [dim]range={node.range_id}[/]"
        options = sorted(legal_actions(state, node.id), key=list(ActionKind).index)
        if options:
            text += f" [dim]→ {', '.join(action.value for action in options)}[/]"
        return text

    def show_tree(self, state: ScenarioState, title: str = "Scenario") -> None:
        root = Tree(f"[bold cyan]{title}[/] ({state.table_format.value})")
        branches: dict[str, Tree] = {}
        for node in state.nodes:
            parent = branches.get(node.parent_id) if node.parent_id else None
            branches[node.id] = (parent or root).add(self._label(state, node))
        self.console.print(Panel(root, border_style="cyan", expand=False))

    def show_history(self, state: ScenarioState) -> None:
        if not state.context.history:
            return
        table = Table(title="Action history", box=box.SIMPLE_HEAVY)
        table.add_column("#", justify="right")
        table.add_column("Seat")
        table.add_column("Action")
        table.add_column("Size", justify="right")
        for entry in state.context.history:
            size = f"{entry.sizing:g}" if entry.sizing is not None else "-"
            table.add_row(str(entry.sequence_index + 1), entry.position.value, entry.action.value, size)
        self.console.print(table)

    def show_error(self, exc: EngineError) -> None:
        self.console.print(f"[bold red]{exc.code}[/]: {exc.message}")
