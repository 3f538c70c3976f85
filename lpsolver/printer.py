"""Text dump of a tableau, for logs and debugging sessions."""

from typing import List


def _num(x: float) -> str:
    return f"{x:9.4f}"


def _cell(text: str) -> str:
    return f"{text:>9}"


def _slot(slot: int, pos: int) -> str:
    return f"{slot:3d} ({pos:3d})"


def format_tableau(tableau) -> str:
    """Render basic rows, reduced costs and the objective constant.

    Only the live part of the matrix is shown: one line per basic slot
    (``slot (row)``), one column per non-basic slot (``slot (column)``).
    """
    t = tableau
    basic = list(t.basic())
    nonbasic = list(t.nonbasic())
    lines: List[str] = [f"state: n = {t.n} m = {t.m}"]
    lines.append("| B:" + "".join(f" {i}->{p}" for i, p in basic))
    lines.append("| N:" + "".join(f" {j}->{p}" for j, p in nonbasic))

    header = "| " + _cell("i/j") + " | " + "".join(_slot(j, p) + " " for j, p in nonbasic) + "| " + _cell("b")
    lines.append(header)
    for i, pi in basic:
        row = "".join(_num(t.A[pi][pj]) + " " for _, pj in nonbasic)
        lines.append("| " + _slot(i, pi) + " | " + row + "| " + _num(t.b[pi]))
    costs = "".join(_num(t.c[pj]) + " " for _, pj in nonbasic)
    lines.append("| " + _cell("c") + " | " + costs + "| " + _num(t.v))
    return "\n".join(lines)
