"""
Board preview renderer.

Draws a perfboard with its components and connections as a PNG image.
This is a debugging aid for routing and layout results, not a
production-quality board view.
"""

from typing import Iterable, Tuple

from PIL import Image, ImageDraw

from .geometry import footprint_bbox, pin_positions
from .models import Board, Component, Connection, Side, SolderBridge, Wire, WireBridge, connection_points
from .search import solder_points


class BoardPreview:
    """Renders a board as a PNG image, one square per hole."""

    def __init__(
        self,
        cell_size: int = 16,
        margin: int = 20,
        hole_radius: int = 2,
        trace_width: int = 4,
    ):
        self.cell_size = cell_size
        self.margin = margin
        self.hole_radius = hole_radius
        self.trace_width = trace_width

        # Colors
        self.bg_color = (222, 196, 140)
        self.hole_color = (150, 120, 80)
        self.body_outline = (40, 40, 40)
        self.body_fill = (235, 235, 235)
        self.pad_color = (200, 140, 40)
        self.bottom_color = (170, 170, 180)
        self.top_color = (30, 90, 200)
        self.bridge_color = (120, 120, 130)
        self.solder_color = (90, 90, 100)

    def _center(self, cell: Tuple[int, int]) -> Tuple[int, int]:
        col, row = cell
        half = self.cell_size // 2
        return (
            self.margin + col * self.cell_size + half,
            self.margin + row * self.cell_size + half,
        )

    def _dot(self, draw: ImageDraw.ImageDraw, cell, radius: int, color):
        x, y = self._center(cell)
        draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=color)

    def render(
        self,
        board: Board,
        components: Iterable[Component] = (),
        connections: Iterable[Connection] = (),
    ) -> Image.Image:
        """
        Render the board.

        Args:
            board: Board bounds
            components: Components; unplaced ones are skipped
            connections: Wires, solder bridges and wire bridges

        Returns:
            The rendered image
        """
        width = board.width * self.cell_size + self.margin * 2
        height = board.height * self.cell_size + self.margin * 2
        img = Image.new("RGB", (width, height), self.bg_color)
        draw = ImageDraw.Draw(img)

        for row in range(board.height):
            for col in range(board.width):
                self._dot(draw, (col, row), self.hole_radius, self.hole_color)

        placed = [comp for comp in components if comp.is_placed]
        for comp in placed:
            self._draw_body(draw, comp)

        # Bottom side first so top-side jumpers stay visible
        connections = list(connections)
        for conn in connections:
            if conn.side == Side.BOTTOM:
                self._draw_connection(draw, conn)
        for conn in connections:
            if conn.side == Side.TOP:
                self._draw_connection(draw, conn)

        for comp in placed:
            for pin in pin_positions(comp):
                self._dot(draw, pin, self.cell_size // 3, self.pad_color)
        return img

    def _draw_body(self, draw: ImageDraw.ImageDraw, comp: Component):
        box = footprint_bbox(comp)
        inset = self.cell_size // 6
        x1, y1 = self._center((box.min_col, box.min_row))
        x2, y2 = self._center((box.max_col, box.max_row))
        half = self.cell_size // 2
        draw.rectangle(
            [x1 - half + inset, y1 - half + inset, x2 + half - inset, y2 + half - inset],
            fill=self.body_fill,
            outline=self.body_outline,
        )

    def _draw_connection(self, draw: ImageDraw.ImageDraw, conn: Connection):
        points = [self._center(p) for p in connection_points(conn)]
        if isinstance(conn, WireBridge):
            color = self.top_color
        elif isinstance(conn, SolderBridge):
            color = self.bridge_color
        else:
            color = self.top_color if conn.side == Side.TOP else self.bottom_color

        for p1, p2 in zip(points, points[1:]):
            draw.line([p1, p2], fill=color, width=self.trace_width)

        if isinstance(conn, Wire):
            for point in solder_points(conn.points):
                self._dot(draw, point, self.trace_width, self.solder_color)

    def save(
        self,
        path: str,
        board: Board,
        components: Iterable[Component] = (),
        connections: Iterable[Connection] = (),
    ) -> str:
        """Render the board and write it as PNG. Returns the path."""
        img = self.render(board, components, connections)
        img.save(path, "PNG")
        return path


def render_board(path: str, board: Board, components=(), connections=(), **kwargs) -> str:
    """Convenience function to write a board preview PNG."""
    return BoardPreview(**kwargs).save(path, board, components, connections)
