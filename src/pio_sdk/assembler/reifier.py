"""
PIO Assembler Operand Reifier (Pass 2)
======================================

Turns parsed instructions into concrete, encodable instructions by
evaluating their expressions against the frozen symbol table and
applying the per-instruction legality rules:

- JMP address, WAIT polarity/index, IN/OUT bit counts and IRQ index are
  truncated to 8 bits; the encoder narrows them to their fields
- delay and side-set values are truncated to 8 bits
- SET data must be in the range 0..31
- MOV operands are classified as plain registers or RX FIFO lanes and
  only three shapes are legal:

    isr          -> rxfifo[..]    MovToRx
    rxfifo[..]   -> osr           MovFromRx
    register     -> register      Mov

  Every other combination raises OperandError naming both operands.
"""

from dataclasses import dataclass
from typing import Union

from pio_sdk.errors import OperandError
from pio_sdk.assembler.expressions import ExpressionEvaluator, ExprNode
from pio_sdk.assembler.parser import (
    ParsedIn,
    ParsedInstruction,
    ParsedIrq,
    ParsedJmp,
    ParsedMov,
    ParsedMovDestination,
    ParsedMovSource,
    ParsedOut,
    ParsedPull,
    ParsedPush,
    ParsedSet,
    ParsedWait,
)
from pio_sdk.assembler.symbols import FrozenSymbolTable
from pio_sdk.isa import (
    In,
    Instruction,
    InstructionOperands,
    Irq,
    Jmp,
    Mov,
    MovDestination,
    MovFromRx,
    MovOperation,
    MovRxIndex,
    MovSource,
    MovToRx,
    Out,
    Pull,
    Push,
    Set,
    Wait,
)

SET_DATA_MAX = 31


# =============================================================================
# MOV Operand Classification
# =============================================================================

@dataclass(frozen=True)
class PlainRegister:
    """A MOV operand that is an ordinary register (or pins, status, null)."""
    register: Union[MovDestination, MovSource]
    name: str


@dataclass(frozen=True)
class FifoLane:
    """A MOV operand that is an RX FIFO lane."""
    index: MovRxIndex
    name: str


MovOperand = Union[PlainRegister, FifoLane]

_FIFO_LANES = {
    "RXFIFOY": (MovRxIndex.RXFIFOY, "rxfifo[y]"),
    "RXFIFO0": (MovRxIndex.RXFIFO0, "rxfifo[0]"),
    "RXFIFO1": (MovRxIndex.RXFIFO1, "rxfifo[1]"),
    "RXFIFO2": (MovRxIndex.RXFIFO2, "rxfifo[2]"),
    "RXFIFO3": (MovRxIndex.RXFIFO3, "rxfifo[3]"),
}


def classify_destination(destination: ParsedMovDestination) -> MovOperand:
    """Split a MOV destination into a plain register or an RX FIFO lane."""
    if destination.name in _FIFO_LANES:
        index, name = _FIFO_LANES[destination.name]
        return FifoLane(index, name)
    return PlainRegister(MovDestination[destination.name], destination.name.lower())


def classify_source(source: ParsedMovSource) -> MovOperand:
    """Split a MOV source into a plain register or an RX FIFO lane."""
    if source.name in _FIFO_LANES:
        index, name = _FIFO_LANES[source.name]
        return FifoLane(index, name)
    return PlainRegister(MovSource[source.name], source.name.lower())


# =============================================================================
# Operand Reifier
# =============================================================================

class OperandReifier:
    """
    Resolves parsed instructions against a frozen symbol table.

    Usage:
        reifier = OperandReifier(processor.symbols.freeze())
        instructions = [reifier.reify(line) for line in processor.instructions]
    """

    def __init__(self, symbols: FrozenSymbolTable):
        self.symbols = symbols
        self._evaluator = ExpressionEvaluator(symbols)

    def reify(self, line: ParsedInstruction) -> Instruction:
        """
        Build the concrete instruction for a parsed instruction line.

        Raises:
            UndefinedSymbolError: If an operand references an unknown symbol
            ExpressionError: On division by zero
            OperandError: On an illegal MOV pair or out-of-range SET data
        """
        delay = self._byte(line.delay, line)
        side_set = None
        if line.side_set is not None:
            side_set = self._byte(line.side_set, line)

        return Instruction(
            operands=self.reify_operands(line),
            delay=delay,
            side_set=side_set,
        )

    def reify_operands(self, line: ParsedInstruction) -> InstructionOperands:
        ops = line.operands

        if isinstance(ops, ParsedJmp):
            return Jmp(condition=ops.condition, address=self._byte(ops.address, line))

        if isinstance(ops, ParsedWait):
            return Wait(
                polarity=self._byte(ops.polarity, line),
                source=ops.source,
                index=self._byte(ops.index, line),
                relative=ops.relative,
            )

        if isinstance(ops, ParsedIn):
            return In(source=ops.source, bit_count=self._byte(ops.bit_count, line))

        if isinstance(ops, ParsedOut):
            return Out(destination=ops.destination, bit_count=self._byte(ops.bit_count, line))

        if isinstance(ops, ParsedPush):
            return Push(if_full=ops.if_full, block=ops.block)

        if isinstance(ops, ParsedPull):
            return Pull(if_empty=ops.if_empty, block=ops.block)

        if isinstance(ops, ParsedMov):
            return self._reify_mov(ops, line)

        if isinstance(ops, ParsedIrq):
            return Irq(
                clear=ops.clear,
                wait=ops.wait,
                index=self._byte(ops.index, line),
                index_mode=ops.index_mode,
            )

        if isinstance(ops, ParsedSet):
            data = self._evaluator.evaluate(ops.data, line.location)
            if not 0 <= data <= SET_DATA_MAX:
                raise OperandError(
                    "SET argument out of range",
                    ops.data.location or line.location,
                    hint=f"value {data} is not in the range 0..{SET_DATA_MAX}",
                    value=data,
                )
            return Set(destination=ops.destination, data=data)

        raise OperandError(f"unsupported operands {type(ops).__name__}", line.location)

    def _reify_mov(self, ops: ParsedMov, line: ParsedInstruction) -> InstructionOperands:
        destination = classify_destination(ops.destination)
        source = classify_source(ops.source)

        if isinstance(destination, FifoLane) and isinstance(source, PlainRegister):
            if source.register == MovSource.ISR:
                self._check_no_operation(ops, source, destination, line)
                return MovToRx(fifo_index=destination.index)
            raise self._illegal_mov(source, destination, line)

        if isinstance(destination, PlainRegister) and isinstance(source, FifoLane):
            if destination.register == MovDestination.OSR:
                self._check_no_operation(ops, source, destination, line)
                return MovFromRx(fifo_index=source.index)
            raise self._illegal_mov(source, destination, line)

        if isinstance(destination, PlainRegister) and isinstance(source, PlainRegister):
            return Mov(destination=destination.register, op=ops.op, source=source.register)

        # Both sides are FIFO lanes
        raise self._illegal_mov(source, destination, line)

    def _check_no_operation(
        self,
        ops: ParsedMov,
        source: MovOperand,
        destination: MovOperand,
        line: ParsedInstruction,
    ) -> None:
        if ops.op != MovOperation.NONE:
            raise OperandError(
                f"cannot invert or bit-reverse when moving {source.name} to {destination.name}",
                line.location,
            )

    def _illegal_mov(
        self,
        source: MovOperand,
        destination: MovOperand,
        line: ParsedInstruction,
    ) -> OperandError:
        return OperandError(
            f"illegal MOV from {source.name} to {destination.name}",
            line.location,
            hint="the RX FIFO can only be written from isr and read into osr",
        )

    def _byte(self, node: ExprNode, line: ParsedInstruction) -> int:
        """Evaluate an expression and keep its low 8 bits."""
        return self._evaluator.evaluate(node, line.location) & 0xFF
