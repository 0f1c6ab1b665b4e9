"""
Frame Rendering
Turn per-frame body positions/masses into an animated GIF
"""

import os
from typing import Dict, List, Tuple
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation, PillowWriter


class Renderer:
    """Interface the simulation drivers render through"""

    def render_frame(self, bodies: np.ndarray, count: int, frame_index: int) -> None:
        """Record the first `count` rows of (x, y, z, mass) as frame `frame_index`."""
        raise NotImplementedError

    def finalize(self) -> None:
        """Flush recorded frames to the output."""
        raise NotImplementedError


def marker_radius(mass: float) -> int:
    """Pixel radius on a log scale of mass, clamped to [1, 20]."""
    return max(1, min(20, int(3.0 * np.log10(mass * 100 + 1))))


def mass_color(mass: float) -> Tuple[float, float, float]:
    """
    Temperature-like RGB colour (0-1 floats) for a mass.

    Small masses are blue/purple, medium white, large yellow to red.
    """
    normalized = min(1.0, mass / 10.0)

    if normalized < 0.3:
        # Blue to purple
        return (normalized / 0.3, 0.0, 1.0)
    if normalized < 0.6:
        # Purple to white
        factor = (normalized - 0.3) / 0.3
        return (1.0, factor, 1.0)
    # White to yellow to red
    factor = (normalized - 0.6) / 0.4
    return (1.0, 1.0 - factor, 1.0 - factor)


class FrameRenderer(Renderer):
    """
    Renders the x/y projection of every frame, black background, fit to screen.

    Frames are held in memory as screen coordinates and only encoded on
    finalize(). Frame index 0 starts a new output.
    """

    def __init__(self, output_path: str = 'nbody_simulation.gif', width: int = 1280,
                 height: int = 720, fps: int = 30, max_scale: float = 1.0, dpi: int = 100):
        """
        Args:
            output_path: GIF file to write
            width, height: Frame size in pixels
            fps: Frames per second of the animation
            max_scale: Upper bound on pixels per length unit
            dpi: Figure resolution used to convert pixels to points
        """
        self.output_path = output_path
        self.width = width
        self.height = height
        self.fps = fps
        self.max_scale = max_scale
        self.dpi = dpi
        self.frames: List[Dict] = []

    def scale_factor(self, positions: np.ndarray) -> float:
        """Pixels per length unit so every body fits inside 80% of the smaller dimension."""
        max_distance = float(np.max(np.linalg.norm(positions, axis=1))) if len(positions) else 0.0
        if max_distance < 1e-10:
            max_distance = 1.0

        screen_radius = min(self.width, self.height) * 0.4
        return min(screen_radius / max_distance, self.max_scale)

    def render_frame(self, bodies: np.ndarray, count: int, frame_index: int) -> None:
        if frame_index == 0:
            self.frames = []

        bodies = np.asarray(bodies[:count], dtype=np.float64)
        scale = self.scale_factor(bodies[:, :3])

        screen_x = bodies[:, 0] * scale + self.width / 2
        screen_y = bodies[:, 1] * scale + self.height / 2

        # Drop bodies well outside the visible area
        visible = ((screen_x >= -20) & (screen_x <= self.width + 20) &
                   (screen_y >= -20) & (screen_y <= self.height + 20))
        masses = bodies[visible, 3]

        radii = np.array([marker_radius(m) for m in masses], dtype=np.float64)
        self.frames.append({
            'frame_index': frame_index,
            'x': screen_x[visible],
            'y': screen_y[visible],
            # scatter sizes are areas in points^2
            'sizes': (radii * 72.0 / self.dpi) ** 2 * np.pi,
            'colors': np.array([mass_color(m) for m in masses], dtype=np.float64).reshape(-1, 3),
        })

    def finalize(self) -> None:
        if not self.frames:
            return

        fig = plt.figure(figsize=(self.width / self.dpi, self.height / self.dpi), dpi=self.dpi)
        fig.patch.set_facecolor('black')
        ax = fig.add_axes([0, 0, 1, 1])

        def update(i):
            ax.clear()
            ax.set_facecolor('black')
            ax.set_xlim(0, self.width)
            ax.set_ylim(self.height, 0)
            ax.axis('off')

            frame = self.frames[i]
            ax.scatter(frame['x'], frame['y'], s=frame['sizes'], c=frame['colors'],
                       edgecolors='white', linewidths=0.3)
            ax.text(10, 30, f"Frame: {frame['frame_index']}", color='white', fontsize=12)

        anim = FuncAnimation(fig, update, frames=len(self.frames), interval=1000 / self.fps)

        directory = os.path.dirname(self.output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        print(f"[Renderer] Creating animation with {len(self.frames)} frames...")
        try:
            anim.save(self.output_path, writer=PillowWriter(fps=self.fps))
        finally:
            plt.close(fig)
        print(f"[Renderer] Saved animation to {self.output_path}")

        self.frames = []
