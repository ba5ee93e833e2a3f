import numpy as np
from typing import List, Optional, Sequence, Tuple
from dataclasses import dataclass
import os

import gravsim as P
from gravsim.engine import SimulationWorld

os.environ['PYGAME_HIDE_SUPPORT_PROMPT'] = '1'
import pygame


@dataclass
class AppearanceConfig:
    """Visual-only settings. They affect pixels, never physics."""
    width: int = int(P.WORLD_WIDTH)
    height: int = int(P.WORLD_HEIGHT)
    bg_color: Tuple[int, int, int] = P.BG_COLOR
    min_radius: int = P.MIN_PIXEL_RADIUS
    mirror_edges: bool = True
    fps: int = P.FPS


def mass_to_color(mass: float, max_mass: float) -> Tuple[int, int, int]:
    """Blue for light bodies, through green, to red near the explosion limit."""
    ratio = min(mass / max_mass, 1.0)
    r = int(255 * (1 - (1 - ratio) ** 2))
    g = int(255 * (1 - (2 * ratio - 1) ** 2))
    b = int(255 * (1 - ratio ** 2))
    return r, g, b


def mirror_offsets(px: float, py: float, pr: float,
                   width: float, height: float) -> List[Tuple[float, float]]:
    """Extra draw offsets for a disc that crosses an edge of a wrapping space."""
    xs = [0]
    if px - pr < 0:
        xs.append(width)
    if px + pr > width:
        xs.append(-width)
    ys = [0]
    if py - pr < 0:
        ys.append(height)
    if py + pr > height:
        ys.append(-height)
    return [(ox, oy) for ox in xs for oy in ys if (ox, oy) != (0, 0)]


class Renderer:
    """Maps world state → pixel frames. Radii are scaled to pixels only here."""

    def __init__(self, config: Optional[AppearanceConfig] = None):
        self.config = config or AppearanceConfig()

    def _scale(self, world: SimulationWorld) -> Tuple[float, float]:
        return (self.config.width / world.config.width,
                self.config.height / world.config.height)

    def _world_to_pixel(self, world: SimulationWorld,
                        wx: float, wy: float) -> Tuple[int, int]:
        sx, sy = self._scale(world)
        return int(wx * sx), int(wy * sy)

    def _world_radius_to_pixel(self, world: SimulationWorld, r: float) -> int:
        _, sy = self._scale(world)
        return max(self.config.min_radius, int(r * sy))

    def pixel_to_world(self, world: SimulationWorld,
                       px: float, py: float) -> Tuple[float, float]:
        sx, sy = self._scale(world)
        return px / sx, py / sy

    def draw(self, surface: pygame.Surface, world: SimulationWorld):
        surface.fill(self.config.bg_color)
        w, h = self.config.width, self.config.height
        mirror = self.config.mirror_edges and world.config.toroidal

        for body in world.bodies:
            color = mass_to_color(body.mass, world.config.max_mass)
            px, py = self._world_to_pixel(world, body.x, body.y)
            pr = self._world_radius_to_pixel(world, body.radius)
            pygame.draw.circle(surface, color, (px, py), pr)
            if mirror:
                for ox, oy in mirror_offsets(px, py, pr, w, h):
                    pygame.draw.circle(surface, color, (px + ox, py + oy), pr)

    def render(self, world: SimulationWorld) -> np.ndarray:
        """Render single frame → (height, width, 3) uint8."""
        surface = pygame.Surface((self.config.width, self.config.height))
        self.draw(surface, world)
        return pygame.surfarray.array3d(surface).transpose(1, 0, 2)


class InteractiveApp:
    """
    Window front-end. Input events change the world only between ticks.

    Left click: spawn body    Right click: run/pause
    Space: single step        Esc: clear
    G / M / D: cycle gravity, max mass, density presets
    Q or close window: quit
    """

    def __init__(self, world: SimulationWorld, renderer: Optional[Renderer] = None):
        self.world = world
        self.renderer = renderer or Renderer(AppearanceConfig(
            width=int(world.config.width), height=int(world.config.height)))
        self.mouse_pos: Optional[Tuple[int, int]] = None
        self.fps = 0.0
        self._screen: Optional[pygame.Surface] = None

    def handle_event(self, event) -> bool:
        """Apply one input event; returns False when the app should quit."""
        if event.type == pygame.QUIT:
            return False
        if event.type == pygame.KEYDOWN:
            if event.key == pygame.K_q:
                return False
            if event.key == pygame.K_ESCAPE:
                self.world.clear()
            elif event.key == pygame.K_SPACE:
                self.world.step_once()
            elif event.key == pygame.K_g:
                self.cycle_parameter('G', P.G_VALUES)
            elif event.key == pygame.K_m:
                self.cycle_parameter('max_mass', P.MAX_MASS_VALUES)
            elif event.key == pygame.K_d:
                self.cycle_parameter('density', P.DENSITY_VALUES)
        elif event.type == pygame.MOUSEBUTTONDOWN:
            if event.button == 1:
                x, y = self.renderer.pixel_to_world(self.world, *event.pos)
                self.world.spawn_body(self.world.random_spawn_mass(), x, y)
            elif event.button == 3:
                self.world.toggle_running()
        elif event.type == pygame.MOUSEMOTION:
            self.mouse_pos = event.pos
        elif event.type == pygame.VIDEORESIZE:
            self.resize(event.w, event.h)
        return True

    def cycle_parameter(self, name: str, values: Sequence[float]) -> float:
        """Move `name` to the preset after its current value."""
        current = getattr(self.world.config, name)
        later = [v for v in values if v > current]
        value = later[0] if later else values[0]
        self.world.set_parameter(name, value)
        return value

    def resize(self, width: int, height: int):
        self.renderer.config.width, self.renderer.config.height = width, height
        self.world.set_dimensions(width, height)
        if self._screen is not None:
            self._screen = pygame.display.set_mode((width, height), pygame.RESIZABLE)

    def status_text(self) -> str:
        world = self.world
        parts = [
            'Running' if world.running else 'Paused',
            f'Bodies: {world.body_count}',
            f'Total mass: {world.total_mass():.0f}',
            f'{self.fps:.0f} FPS',
        ]
        if self.mouse_pos is not None:
            x, y = self.renderer.pixel_to_world(world, *self.mouse_pos)
            body = world.query_body_at(x, y)
            if body is not None:
                parts.append(f'Mass: {body.mass:.0f}  '
                             f'Velocity: x={body.vx:.2f} y={body.vy:.2f}')
            else:
                parts.append(f'Position: x={x:.0f} y={y:.0f}')
        return ' | '.join(parts)

    def run(self):
        pygame.init()
        self._screen = pygame.display.set_mode(
            (self.renderer.config.width, self.renderer.config.height), pygame.RESIZABLE)
        clock = pygame.time.Clock()

        running = True
        while running:
            for event in pygame.event.get():
                if not self.handle_event(event):
                    running = False
                    break

            self.world.tick()
            self.renderer.draw(self._screen, self.world)
            pygame.display.set_caption(self.status_text())
            pygame.display.flip()

            clock.tick(self.renderer.config.fps)
            self.fps = clock.get_fps()

        pygame.quit()
        self._screen = None
