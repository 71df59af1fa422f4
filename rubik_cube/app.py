"""
Rubik's Cube desktop front end: Pygame window + PyOpenGL rendering.

Controls:
    Drag on the cube     – Turn the layer under the pointer
    Drag the background  – Orbit camera
    Mouse wheel          – Zoom
    Two-finger twist     – Spin the cube about the view axis (touch screens)

    CUBE MOVES:
    R L U D F B          – Clockwise face turns
    M E N                – Middle / equator / standing slice (N = S slice)
    X Y Z                – Whole-cube rotations
    Arrow Keys           – U/D/L/R face turns
    Shift + (key)        – Counterclockwise (prime) turn

    SHORTCUTS:
    S                    – Scramble
    Tab                  – Solve
    O                    – Orient (white up, green front)
    Ctrl+Z / Ctrl+Y      – Undo / redo
    H                    – Reset view orientation
    T                    – Toggle fast mode
    C                    – Reset to solved
    ESC or Q             – Quit
"""
from __future__ import annotations

import warnings
warnings.filterwarnings("ignore", category=UserWarning, module="pygame.pkgdata")
import asyncio
import logging
from typing import Dict, Optional, Set, Tuple

import pygame
from pygame.locals import *  # noqa: F401,F403
from OpenGL.GL import *  # noqa: F401,F403
from OpenGL.GLU import *  # noqa: F401,F403

from . import config, log
from .config import sanitize_numeric_input
from .controller import CubeController
from .geometry import PerspectiveCamera
from .moves import Base, InvalidMoveError, Modifier, Move
from .scene import PieceNode
from .scheduler import MoveSource

MOUSE_POINTER = 0

KEY_TO_BASE: Dict[int, Base] = {
    K_u: Base.U, K_d: Base.D, K_l: Base.L, K_r: Base.R, K_f: Base.F, K_b: Base.B,
    K_m: Base.M, K_e: Base.E, K_n: Base.S,
    K_x: Base.x, K_y: Base.y, K_z: Base.z,
    K_UP: Base.U, K_DOWN: Base.D, K_LEFT: Base.L, K_RIGHT: Base.R,
}


# -----------------------------
# Rendering
# -----------------------------

def set_face_material(color: Optional[str]) -> None:
    if color is not None and color in config.COLORS:
        r, g, b = config.COLORS[color]
        glMaterialfv(GL_FRONT, GL_DIFFUSE, (GLfloat * 4)(r, g, b, 1.0))
        glMaterialfv(GL_FRONT, GL_AMBIENT, (GLfloat * 4)(r * 0.3, g * 0.3, b * 0.3, 1.0))
        glMaterialfv(GL_FRONT, GL_SPECULAR, (GLfloat * 4)(0.3, 0.3, 0.3, 1.0))
        glMaterialfv(GL_FRONT, GL_SHININESS, (GLfloat * 1)(20.0))
    else:
        # Dark plastic for faces without stickers
        glMaterialfv(GL_FRONT, GL_DIFFUSE, (GLfloat * 4)(0.05, 0.05, 0.05, 1.0))
        glMaterialfv(GL_FRONT, GL_AMBIENT, (GLfloat * 4)(0.01, 0.01, 0.01, 1.0))


def _face_quads(h: float):
    return [
        ('U', (0.0, 1.0, 0.0), [(-h, h, -h), (-h, h, h), (h, h, h), (h, h, -h)]),
        ('D', (0.0, -1.0, 0.0), [(-h, -h, -h), (h, -h, -h), (h, -h, h), (-h, -h, h)]),
        ('F', (0.0, 0.0, 1.0), [(-h, -h, h), (h, -h, h), (h, h, h), (-h, h, h)]),
        ('B', (0.0, 0.0, -1.0), [(-h, -h, -h), (-h, h, -h), (h, h, -h), (h, -h, -h)]),
        ('R', (1.0, 0.0, 0.0), [(h, -h, -h), (h, h, -h), (h, h, h), (h, -h, h)]),
        ('L', (-1.0, 0.0, 0.0), [(-h, -h, -h), (-h, -h, h), (-h, h, h), (-h, h, -h)]),
    ]


def draw_cubelet(piece: PieceNode, stickers: Dict[str, str], half: float) -> None:
    """Draw one piece at its scene-graph transform with the given sticker colors."""
    glPushMatrix()
    try:
        glMultMatrixf(piece.world_matrix().T.astype('float32'))
        for face_name, normal, vertices in _face_quads(half):
            # Material has to be set outside glBegin/glEnd
            set_face_material(stickers.get(face_name))
            glBegin(GL_QUADS)
            glNormal3f(*normal)
            for vertex in vertices:
                glVertex3f(*vertex)
            glEnd()
    finally:
        glPopMatrix()


# -----------------------------
# App / Main Loop
# -----------------------------
class App:
    def __init__(self, fast: bool = False, scramble_length: int = config.SCRAMBLE_LENGTH) -> None:
        pygame.init()
        self.window_w = int(config.WINDOW_W)
        self.window_h = int(config.WINDOW_H)
        pygame.display.set_mode((self.window_w, self.window_h), DOUBLEBUF | OPENGL)
        pygame.display.set_caption("Rubik's Cube")
        self.clock = pygame.time.Clock()

        # Camera on a sphere around the origin
        self.cam_dist = config.CAM_DIST
        self.cam_yaw = config.CAM_YAW
        self.cam_pitch = config.CAM_PITCH
        self.camera = PerspectiveCamera(self.window_w, self.window_h, config.FOV_DEG)
        self.camera.orbit(self.cam_yaw, self.cam_pitch, self.cam_dist)

        self.controller = CubeController(camera=self.camera)
        self.controller.scene.mount_all(lambda cell: cell)
        self.controller.scheduler.register_commit_handler(self._on_commit)
        self.controller.set_fast_mode(fast)
        self.scramble_length = scramble_length

        self.orbiting = False
        self.last_mouse: Optional[Tuple[int, int]] = None
        self._tasks: Set[asyncio.Task] = set()

        # Timing
        self.solve_started = False
        self.time_ms = 0

        self._setup_gl()
        log.LOGGER.log(logging.INFO, "Rubik's Cube started")

    def _setup_gl(self) -> None:
        glViewport(0, 0, self.window_w, self.window_h)
        glMatrixMode(GL_PROJECTION)
        glLoadIdentity()
        gluPerspective(self.camera.fov_deg, self.camera.aspect, self.camera.near, self.camera.far)
        glMatrixMode(GL_MODELVIEW)
        glEnable(GL_DEPTH_TEST)
        glEnable(GL_CULL_FACE)
        glCullFace(GL_BACK)
        glClearColor(0.08, 0.08, 0.1, 1.0)
        glEnable(GL_MULTISAMPLE)

        # Light (simple ambient + directional)
        glEnable(GL_LIGHTING)
        glEnable(GL_LIGHT0)
        glLightfv(GL_LIGHT0, GL_AMBIENT, (GLfloat * 4)(0.3, 0.3, 0.3, 1.0))
        glLightfv(GL_LIGHT0, GL_DIFFUSE, (GLfloat * 4)(0.8, 0.8, 0.8, 1.0))
        glLightfv(GL_LIGHT0, GL_POSITION, (GLfloat * 4)(5.0, 8.0, 10.0, 1.0))
        glDisable(GL_COLOR_MATERIAL)  # colors are set through materials

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.LOGGER.log(logging.ERROR, f"Background task failed: {task.exception()!r}")

    def _on_commit(self, move: Move, source: MoveSource) -> None:
        if source is not MoveSource.QUEUE and not self.solve_started:
            self.solve_started = True
            self.time_ms = 0

    async def run(self) -> None:
        """Main game loop."""
        running = True
        try:
            while running:
                dt = self.clock.tick(int(config.FPS)) / 1000.0
                dt = sanitize_numeric_input(dt, 0.0, 1.0, 0.016)

                for event in pygame.event.get():
                    try:
                        if event.type == QUIT:
                            running = False
                        elif event.type == KEYDOWN:
                            running = self._handle_key(event)
                        elif event.type == MOUSEBUTTONDOWN:
                            self._handle_mouse_button_down(event)
                        elif event.type == MOUSEBUTTONUP:
                            self._handle_mouse_button_up(event)
                        elif event.type == MOUSEMOTION:
                            self._handle_mouse_motion(event)
                        elif event.type in (FINGERDOWN, FINGERMOTION, FINGERUP):
                            self._handle_finger(event)
                    except InvalidMoveError as e:
                        log.LOGGER.log(logging.WARNING, f"Ignored move: {e}")

                self.controller.update()
                self._update_timer(dt)
                self._render()
                await asyncio.sleep(0)
        finally:
            for task in list(self._tasks):
                task.cancel()
            self.cleanup()

    def cleanup(self) -> None:
        glDisable(GL_LIGHTING)
        glDisable(GL_LIGHT0)
        glDisable(GL_DEPTH_TEST)
        pygame.quit()

    def _update_timer(self, dt: float) -> None:
        engine = self.controller.engine
        if self.solve_started and not engine.is_solved():
            self.time_ms += int(dt * 1000)
        elif self.solve_started and self.controller.scheduler.idle:
            # Solved: freeze the time until the next scramble
            self.solve_started = False

    # -------- keyboard --------
    def _handle_key(self, event) -> bool:
        """Returns False when the app should quit."""
        mods = pygame.key.get_mods()
        ctrl = bool(mods & KMOD_CTRL)
        shift = bool(mods & KMOD_SHIFT)
        if event.key in (K_ESCAPE, K_q):
            return False
        if ctrl and event.key == K_z:
            self.controller.undo()
        elif ctrl and event.key == K_y:
            self.controller.redo()
        elif event.key == K_c:
            self.controller.reset()
            self.solve_started = False
            self.time_ms = 0
        elif event.key == K_s:
            self.controller.scramble(self.scramble_length)
            self.solve_started = False
            self.time_ms = 0
        elif event.key == K_TAB:
            self._spawn(self.controller.solve_async())
        elif event.key == K_o:
            self.controller.auto_orient()
        elif event.key == K_h:
            self.controller.reset_orientation()
        elif event.key == K_t:
            self.controller.set_fast_mode(not self.controller.fast_mode)
        elif event.key in KEY_TO_BASE:
            move = Move(KEY_TO_BASE[event.key], Modifier.PRIME if shift else Modifier.NONE)
            self._spawn(self.controller.request_move(move))
        return True

    # -------- mouse --------
    def _handle_mouse_button_down(self, event) -> None:
        if getattr(event, 'touch', False):
            return
        if event.button == 1:
            x, y = event.pos
            hit = self.controller.handle_pointer_down(x, y, MOUSE_POINTER)
            self.orbiting = not hit and self.controller.orbit_enabled
            self.last_mouse = (int(x), int(y))
        elif event.button == 4:  # wheel up
            self._zoom(1.0 / config.ZOOM_SENS)
        elif event.button == 5:  # wheel down
            self._zoom(config.ZOOM_SENS)

    def _handle_mouse_button_up(self, event) -> None:
        if getattr(event, 'touch', False) or event.button != 1:
            return
        self.controller.handle_pointer_up(MOUSE_POINTER)
        self.orbiting = False
        self.last_mouse = None

    def _handle_mouse_motion(self, event) -> None:
        if getattr(event, 'touch', False):
            return
        x, y = int(event.pos[0]), int(event.pos[1])
        if self.orbiting and self.last_mouse is not None:
            dx = sanitize_numeric_input(x - self.last_mouse[0], -1000, 1000, 0)
            dy = sanitize_numeric_input(y - self.last_mouse[1], -1000, 1000, 0)
            self.cam_yaw = sanitize_numeric_input(self.cam_yaw + dx * config.MOUSE_SENS, -720, 720, self.cam_yaw)
            self.cam_pitch = sanitize_numeric_input(self.cam_pitch + dy * config.MOUSE_SENS, -89, 89, self.cam_pitch)
            self.camera.orbit(self.cam_yaw, self.cam_pitch, self.cam_dist)
        elif self.last_mouse is not None:
            self.controller.pointer_move(MOUSE_POINTER, x, y)
        self.last_mouse = (x, y)

    def _zoom(self, factor: float) -> None:
        self.cam_dist = sanitize_numeric_input(self.cam_dist * factor, 3.0, 50.0, self.cam_dist)
        self.camera.orbit(self.cam_yaw, self.cam_pitch, self.cam_dist)

    def _handle_finger(self, event) -> None:
        # finger ids start at 0, which is the mouse's pointer id
        pointer_id = int(event.finger_id) + 1
        x, y = event.x * self.window_w, event.y * self.window_h
        if event.type == FINGERDOWN:
            self.controller.handle_pointer_down(x, y, pointer_id, touch=True)
        elif event.type == FINGERMOTION:
            self.controller.pointer_move(pointer_id, x, y, touch=True)
        else:
            self.controller.handle_pointer_up(pointer_id, touch=True)

    # -------- drawing --------
    def _apply_camera(self) -> None:
        glLoadIdentity()
        gluLookAt(*self.camera.position, *self.camera.target, *self.camera.up)

    def _render(self) -> None:
        glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)
        self._apply_camera()

        engine = self.controller.engine
        half = config.CUBELET_SIZE / 2.0
        for cell, piece in self.controller.scene.pieces.items():
            draw_cubelet(piece, engine.cell_colors(cell), half)

        # Window title with timer + state
        scheduler = self.controller.scheduler
        secs = self.time_ms / 1000.0
        run = f"  [{scheduler.run_tag.value} {scheduler.run_index}/{scheduler.run_length}]" if scheduler.run_length and scheduler.queue_length else ""
        fast = "  FAST" if self.controller.fast_mode else ""
        solved = "  SOLVED!" if engine.is_solved() else ""
        pygame.display.set_caption(f"Rubik's Cube - MovesQ:{scheduler.queue_length}  Moves:{self.controller.move_count}"
                                   f"  Time: {secs:.2f}s{run}{fast}{solved}")
        pygame.display.flip()
