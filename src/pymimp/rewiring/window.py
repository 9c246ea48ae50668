"""
Flanking window extraction around residue positions.

Windows are always 2 * flank + 1 characters long. Positions close to (or
past) either end of the sequence are filled with a padding character.
"""

from typing import List, Mapping, Sequence, Tuple, Union

from ..errors import InputValidationError, LengthMismatch


DEFAULT_FLANK = 7
DEFAULT_PAD = "-"


def flanking_sequence(
    sequence: str,
    position: int,
    flank: int = DEFAULT_FLANK,
    pad: str = DEFAULT_PAD,
) -> str:
    """Get the flanking window centred on a 1-based position.

    Args:
        sequence: Full-length sequence
        position: 1-based position of the central residue
        flank: Residues to take on each side
        pad: Character used for out of bound positions

    Returns:
        Window of length 2 * flank + 1

    Example:
        >>> flanking_sequence("ABC", 2, flank=1)
        'ABC'
        >>> flanking_sequence("ABC", 2, flank=3)
        '--ABC--'
    """
    if flank < 0:
        raise InputValidationError(f"Flank must be non-negative, got {flank}")
    if position < 1:
        raise InputValidationError(f"Positions are 1-based, got {position}")
    if len(pad) != 1:
        raise InputValidationError(f"Padding must be a single character, got '{pad}'")

    width = 2 * flank + 1
    border = pad * flank
    padded = border + sequence + border

    # Position p sits at padded index p - 1 + flank, so the window starts at p - 1
    start = position - 1
    return padded[start:start + width].ljust(width, pad)


def flanking_sequences(
    sequences: Union[str, Sequence[str], Mapping[str, str]],
    positions: Sequence[Union[int, Tuple[str, int]]],
    flank: int = DEFAULT_FLANK,
    pad: str = DEFAULT_PAD,
) -> List[str]:
    """Get flanking windows for many positions.

    A single sequence is broadcast across all positions; a list of sequences
    is paired element-wise with positions. With a mapping of gene to
    sequence, positions are (gene, position) pairs.

    Raises:
        LengthMismatch: If several sequences are given and their count does
            not match the number of positions
        InputValidationError: If a gene has no sequence in the mapping
    """
    if isinstance(sequences, Mapping):
        missing = sorted({gene for gene, _ in positions if gene not in sequences})
        if missing:
            raise InputValidationError(f"No sequence for genes: {', '.join(missing)}")
        return [
            flanking_sequence(sequences[gene], pos, flank=flank, pad=pad)
            for gene, pos in positions
        ]

    if isinstance(sequences, str):
        sequences = [sequences]
    else:
        sequences = list(sequences)

    if len(sequences) == 1 and len(positions) >= 1:
        sequences = sequences * len(positions)

    if len(sequences) != len(positions):
        raise LengthMismatch(
            f"Length of sequences ({len(sequences)}) must be equal to "
            f"length of positions ({len(positions)})"
        )

    return [
        flanking_sequence(seq, pos, flank=flank, pad=pad)
        for seq, pos in zip(sequences, positions)
    ]
