"""Conversions between interline fractions and pixels.

All geometric thresholds are expressed as a fraction of the interline
(the distance between two staff lines), so that they remain valid
whatever the image resolution.
"""


class Scale:
    """Scale of an image, defined by its interline in pixels.

    Attributes:
        interline: Distance between two staff lines, in pixels.
    """

    def __init__(self, interline: int):
        if interline <= 0:
            raise ValueError(f"Interline must be positive, got {interline}")
        self.interline = interline

    def to_pixels(self, fraction: float) -> int:
        """Convert an interline fraction to a rounded number of pixels.

        Rounding is half to even, so 2.5 pixels give 2 and 3.5 give 4.
        """
        return int(round(fraction * self.interline))

    def to_interline(self, pixels: float) -> float:
        """Convert a length in pixels to interline units."""
        return pixels / self.interline

    def to_square_interline(self, area: float) -> float:
        """Convert an area in square pixels to square interline units."""
        return area / (self.interline * self.interline)

    def __repr__(self) -> str:
        return f"Scale(interline={self.interline})"
