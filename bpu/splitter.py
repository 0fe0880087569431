"""Split a flattened script into delimiter-bounded tapes.

The splitter walks the linear token stream once, accumulating cells into the
current group and flushing that group into a :class:`~bpu.model.Tape`
whenever a token matches one of the configured delimiter rules. How the
delimiter itself is placed depends on the rule's :class:`~bpu.model.Include`
policy.

Indexing has two irregularities:

* ``CENTER`` advances the tape index once for the flushed group, so the
  delimiter's singleton tape and the next flushed tape share an index.
* ``RIGHT`` builds the delimiter cell with the cell index from before the
  flush instead of ``0``.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .model import Cell, CellTransform, Include, IndexCounter, SplitConfig, Tape
from .script import Conditional, OpCode, Push, ScriptToken


class TapeSplitter:
    """Group a flattened token stream into tapes using ordered split rules."""

    def __init__(
        self,
        settings: Sequence[SplitConfig] = (),
        transform: CellTransform | None = None,
    ) -> None:
        self.settings = list(settings)
        self.transform = transform

    def split(self, tokens: Iterable[ScriptToken]) -> tuple[list[Tape], IndexCounter]:
        """Return the tapes for one input/output and the final counters.

        ``tokens`` must already be flattened (see
        :func:`bpu.script.flatten_script`).
        """

        counter = IndexCounter()
        tapes: list[Tape] = []
        group: list[Cell] = []

        for chunk_index, token in enumerate(tokens):
            counter.chunk_index = chunk_index
            group = self._consume(token, group, tapes, counter)

        if group:
            tapes.append(Tape(cell=group, i=counter.tape_index))
        return tapes, counter

    def match(self, token: ScriptToken) -> Include | None:
        """Return the include policy of the last rule matching ``token``."""

        include: Include | None = None
        if isinstance(token, OpCode):
            for setting in self.settings:
                if setting.token.matches_opcode(token.code, token.name):
                    include = setting.include
        elif isinstance(token, Push):
            text = _lossy_text(token.data)
            for setting in self.settings:
                if setting.token.matches_push(token.data, text):
                    include = setting.include
        return include

    def _consume(
        self,
        token: ScriptToken,
        group: list[Cell],
        tapes: list[Tape],
        counter: IndexCounter,
    ) -> list[Cell]:
        if isinstance(token, Conditional):
            raise TypeError("conditional tokens must be flattened before splitting")

        include = self.match(token)

        if include is None:
            group.append(self._make_cell(token, counter.chunk_index, counter.cell_index))
            counter.cell_index += 1
            return group

        if include is Include.LEFT:
            group.append(self._make_cell(token, counter.chunk_index, counter.cell_index))
            counter.cell_index += 1
            tapes.append(Tape(cell=group, i=counter.tape_index))
            counter.tape_index += 1
            counter.cell_index = 0
            return []

        if include is Include.RIGHT:
            tapes.append(Tape(cell=group, i=counter.tape_index))
            counter.tape_index += 1
            delimiter = self._make_cell(token, counter.chunk_index, counter.cell_index)
            counter.cell_index = 1
            return [delimiter]

        # Include.CENTER
        tapes.append(Tape(cell=group, i=counter.tape_index))
        counter.tape_index += 1
        delimiter = self._make_cell(token, counter.chunk_index, 0)
        tapes.append(Tape(cell=[delimiter], i=counter.tape_index))
        counter.cell_index = 0
        return []

    def _make_cell(self, token: ScriptToken, chunk_index: int, cell_index: int) -> Cell:
        if isinstance(token, OpCode):
            cell = Cell(ii=chunk_index, i=cell_index, op=token.code, ops=token.name)
        else:
            cell = Cell(ii=chunk_index, i=cell_index, b=token.data, s=_lossy_text(token.data))
        if self.transform is None:
            return cell
        return self.transform(cell, token)


def _lossy_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def split_tapes(
    tokens: Iterable[ScriptToken],
    settings: Sequence[SplitConfig],
    transform: CellTransform | None = None,
) -> list[Tape]:
    """Convenience wrapper returning only the tapes."""

    tapes, _ = TapeSplitter(settings, transform).split(tokens)
    return tapes
