import logging
import os
import tempfile
import threading

import customtkinter as ctk
from tkinter import filedialog

from .color import parse_color, to_hex
from .export import VideoExporter, VideoSettings, export_image
from .processor import (VideoProcessor, FrameSkipper, PlaybackClock, IMAGE_EXTS,
                        VIDEO_EXTS, is_video_path, load_image)
from .rasterizer import render
from .settings import (DEFAULT_SETTINGS, DEFAULT_PREVIEW_FPS, DISPLAY_FPS, LIMITS,
                       STATUS_TIMEOUT_MS, Preset, Shape, load_preset, save_preset)
from .snippet import write_snippet

logger = logging.getLogger(__name__)


class DesignToken:
    """Swiss/International Style Design System"""

    WHITE = "#FEFEFE"
    GRAY_400 = "#A3A3A3"
    GRAY_500 = "#737373"
    GRAY_600 = "#525252"

    # Greyscale dark theme
    BG = "#1A1A1A"           # Main background
    CARD = "#2A2A2A"         # Section backgrounds
    CARD_HOVER = "#333333"   # Hover state
    BORDER = "#3A3A3A"       # Borders
    BTN = "#404040"          # Button background
    BTN_HOVER = "#4A4A4A"    # Button hover
    BTN_PRIMARY = "#525252"  # Primary button
    BTN_PRIMARY_HOVER = "#5C5C5C"

    SUCCESS = "#6EE7B7"
    ERROR = "#FCA5A5"

    FONT_FAMILY = "Helvetica Neue"

    # Spacing based on 8px grid
    SPACE_XS = 4
    SPACE_SM = 8
    SPACE_MD = 16
    SPACE_LG = 24
    SPACE_XL = 32

    RADIUS_SM = 2
    RADIUS_MD = 4

    @staticmethod
    def get_font(size=14, weight="normal"):
        return (DesignToken.FONT_FAMILY, size, weight)


def _ext_pattern(exts):
    return " ".join(f"*{e}" for e in sorted(exts))


class ReticulationsApp(ctk.CTk):
    PREVIEW_SIZE = (760, 760)

    def __init__(self):
        super().__init__()

        ctk.set_appearance_mode("dark")

        self.title("RETICULATIONS")
        self.geometry("1120x820")
        self.configure(fg_color=DesignToken.BG)

        # --- Model ---
        self.settings = DEFAULT_SETTINGS
        self.source = None          # still image source raster
        self.video = None           # VideoProcessor for the live preview
        self.source_path = None
        self.target = None          # last rendered raster
        self.skipper = FrameSkipper(DEFAULT_PREVIEW_FPS)
        self.clock = PlaybackClock(0)
        self.frame = None          # last decoded video frame
        self.load_seq = 0
        self.exporting = False
        self._tick_job = None
        self._status_job = None
        self._value_labels = {}

        # --- Variables ---
        self.file_display = ctk.StringVar(value="No file selected")
        self.cell_size = ctk.IntVar(value=self.settings.cell_size)
        self.contrast = ctk.DoubleVar(value=self.settings.contrast)
        self.overlap = ctk.DoubleVar(value=self.settings.overlap)
        self.sensitivity = ctk.DoubleVar(value=self.settings.edge_sensitivity)
        self.preview_fps = ctk.IntVar(value=DEFAULT_PREVIEW_FPS)
        self.invert = ctk.BooleanVar(value=self.settings.invert)
        self.threshold = ctk.BooleanVar(value=self.settings.threshold)
        self.edge_detection = ctk.BooleanVar(value=self.settings.edge_detection)
        self.shape = ctk.StringVar(value=self.settings.shape.value)
        self.fg_text = ctk.StringVar(value=to_hex(self.settings.foreground))
        self.bg_text = ctk.StringVar(value=to_hex(self.settings.background))
        self.status_text = ctk.StringVar(value="")

        self.create_ui()
        self.protocol("WM_DELETE_WINDOW", self.on_close)

    # ═══════════════════════════════════════════════════════════
    # UI
    # ═══════════════════════════════════════════════════════════
    def create_section_label(self, parent, title):
        ctk.CTkLabel(
            parent,
            text=title.upper(),
            font=DesignToken.get_font(11, "bold"),
            text_color=DesignToken.GRAY_500
        ).pack(anchor="w", pady=(0, DesignToken.SPACE_SM))

    def create_card(self, parent):
        section = ctk.CTkFrame(
            parent, fg_color=DesignToken.CARD, corner_radius=DesignToken.RADIUS_MD)
        section.pack(fill="x", pady=(0, DesignToken.SPACE_LG))
        inner = ctk.CTkFrame(section, fg_color="transparent")
        inner.pack(fill="x", padx=DesignToken.SPACE_MD, pady=DesignToken.SPACE_MD)
        return inner

    def create_button(self, parent, text, command, primary=False, **kwargs):
        return ctk.CTkButton(
            parent,
            text=text,
            command=command,
            height=kwargs.pop("height", 32),
            fg_color=DesignToken.BTN_PRIMARY if primary else DesignToken.BTN,
            hover_color=DesignToken.BTN_PRIMARY_HOVER if primary else DesignToken.BTN_HOVER,
            text_color=DesignToken.WHITE,
            corner_radius=DesignToken.RADIUS_SM,
            font=DesignToken.get_font(kwargs.pop("font_size", 12),
                                      "bold" if primary else "normal"),
            **kwargs
        )

    def create_slider(self, parent, label, variable, name, integer=False):
        """Labelled slider bound to one ranged setting."""
        limits = LIMITS[name]
        frame = ctk.CTkFrame(parent, fg_color="transparent")
        frame.pack(fill="x", pady=(0, DesignToken.SPACE_SM))

        header = ctk.CTkFrame(frame, fg_color="transparent")
        header.pack(fill="x")
        ctk.CTkLabel(
            header,
            text=label,
            font=DesignToken.get_font(10, "bold"),
            text_color=DesignToken.GRAY_500
        ).pack(side="left")
        value_label = ctk.CTkLabel(
            header,
            text=self._format_value(variable.get(), integer),
            font=DesignToken.get_font(10),
            text_color=DesignToken.GRAY_400
        )
        value_label.pack(side="right")
        self._value_labels[name] = (value_label, variable, integer)

        steps = int(round((limits.max - limits.min) / limits.step))

        def on_change(value):
            value = int(round(value)) if integer else round(float(value), 2)
            value_label.configure(text=self._format_value(value, integer))
            self.on_slider(name, value)

        ctk.CTkSlider(
            frame,
            from_=limits.min,
            to=limits.max,
            number_of_steps=steps,
            variable=variable,
            command=on_change,
            button_color=DesignToken.GRAY_400,
            progress_color=DesignToken.GRAY_500,
            fg_color=DesignToken.BORDER
        ).pack(fill="x", pady=(DesignToken.SPACE_XS, 0))
        return frame

    @staticmethod
    def _format_value(value, integer):
        return str(int(value)) if integer else f"{float(value):.1f}"

    def create_switch(self, parent, text, variable, name):
        ctk.CTkSwitch(
            parent,
            text=text,
            variable=variable,
            command=lambda: self.on_toggle(name, variable.get()),
            progress_color=DesignToken.GRAY_500,
            text_color=DesignToken.WHITE,
            font=DesignToken.get_font(12)
        ).pack(anchor="w", pady=(0, DesignToken.SPACE_SM))

    def create_color_entry(self, parent, label, variable, name):
        frame = ctk.CTkFrame(parent, fg_color="transparent")
        frame.pack(fill="x", pady=(0, DesignToken.SPACE_SM))
        ctk.CTkLabel(
            frame,
            text=label,
            width=90,
            anchor="w",
            font=DesignToken.get_font(10, "bold"),
            text_color=DesignToken.GRAY_500
        ).pack(side="left")
        entry = ctk.CTkEntry(
            frame,
            textvariable=variable,
            height=28,
            corner_radius=DesignToken.RADIUS_SM,
            border_width=1,
            border_color=DesignToken.BORDER,
            fg_color=DesignToken.BTN,
            text_color=DesignToken.WHITE,
            font=DesignToken.get_font(12)
        )
        entry.pack(side="left", fill="x", expand=True)
        entry.bind("<Return>", lambda _e: self.on_color(name, variable))
        entry.bind("<FocusOut>", lambda _e: self.on_color(name, variable))

    def create_ui(self):
        self.main = ctk.CTkFrame(self, fg_color="transparent")
        self.main.pack(fill="both", expand=True,
                       padx=DesignToken.SPACE_XL, pady=DesignToken.SPACE_XL)

        sidebar = ctk.CTkScrollableFrame(self.main, width=300, fg_color="transparent")
        sidebar.pack(side="left", fill="y", padx=(0, DesignToken.SPACE_LG))

        # ═══════════════════════════════════════════════════════════
        # SECTION: INPUT
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(sidebar, "Input")
        card = self.create_card(sidebar)
        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x")
        self.create_button(row, "Open", self.browse_file, width=70).pack(side="left")
        ctk.CTkLabel(
            row,
            textvariable=self.file_display,
            font=DesignToken.get_font(11),
            text_color=DesignToken.GRAY_400,
            anchor="w"
        ).pack(side="left", fill="x", expand=True, padx=(DesignToken.SPACE_SM, 0))

        # ═══════════════════════════════════════════════════════════
        # SECTION: GRID
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(sidebar, "Grid")
        card = self.create_card(sidebar)
        self.create_slider(card, "CELL SIZE", self.cell_size, "cell_size", integer=True)
        self.create_slider(card, "CONTRAST", self.contrast, "contrast")
        self.create_slider(card, "OVERLAP", self.overlap, "overlap")
        self.create_switch(card, "Invert", self.invert, "invert")
        self.create_switch(card, "Uniform size", self.threshold, "threshold")
        self.create_switch(card, "Edge detection", self.edge_detection, "edge_detection")
        self.sensitivity_frame = self.create_slider(
            card, "SENSITIVITY", self.sensitivity, "edge_sensitivity")
        self.fps_frame = self.create_slider(
            card, "PREVIEW FPS", self.preview_fps, "preview_fps", integer=True)
        self._sync_optional_controls()

        # ═══════════════════════════════════════════════════════════
        # SECTION: SHAPE
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(sidebar, "Shape")
        card = self.create_card(sidebar)
        shapes = [s.value for s in Shape]
        for start in range(0, len(shapes), 4):
            ctk.CTkSegmentedButton(
                card,
                values=shapes[start:start + 4],
                variable=self.shape,
                command=self.on_shape,
                height=28,
                corner_radius=DesignToken.RADIUS_SM,
                fg_color=DesignToken.BORDER,
                selected_color=DesignToken.GRAY_500,
                selected_hover_color=DesignToken.GRAY_400,
                unselected_color=DesignToken.BORDER,
                unselected_hover_color=DesignToken.BTN,
                text_color=DesignToken.WHITE,
                font=DesignToken.get_font(11)
            ).pack(fill="x", pady=(0, DesignToken.SPACE_XS))

        # ═══════════════════════════════════════════════════════════
        # SECTION: COLORS
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(sidebar, "Colors")
        card = self.create_card(sidebar)
        self.create_color_entry(card, "BACKGROUND", self.bg_text, "background")
        self.create_color_entry(card, "FOREGROUND", self.fg_text, "foreground")
        self.create_button(card, "Swap colors", self.swap_colors).pack(fill="x")

        # ═══════════════════════════════════════════════════════════
        # SECTION: PRESETS
        # ═══════════════════════════════════════════════════════════
        self.create_section_label(sidebar, "Presets")
        card = self.create_card(sidebar)
        row = ctk.CTkFrame(card, fg_color="transparent")
        row.pack(fill="x")
        row.columnconfigure((0, 1, 2), weight=1)
        self.create_button(row, "Load", self.load_preset_file).grid(
            row=0, column=0, sticky="ew", padx=(0, DesignToken.SPACE_XS))
        self.create_button(row, "Save", self.save_preset_file).grid(
            row=0, column=1, sticky="ew", padx=(0, DesignToken.SPACE_XS))
        self.create_button(row, "Snippet", self.export_snippet).grid(
            row=0, column=2, sticky="ew")

        # ═══════════════════════════════════════════════════════════
        # EXPORT BUTTON
        # ═══════════════════════════════════════════════════════════
        self.btn_export = self.create_button(
            sidebar, "EXPORT IMAGE", self.start_export, primary=True,
            height=56, font_size=16)
        self.btn_export.pack(fill="x", pady=(DesignToken.SPACE_SM, DesignToken.SPACE_MD))

        self.progress = ctk.CTkProgressBar(
            sidebar,
            height=4,
            corner_radius=2,
            fg_color=DesignToken.BORDER,
            progress_color=DesignToken.GRAY_500
        )
        self.progress.pack(fill="x")
        self.progress.set(0)

        self.status_label = ctk.CTkLabel(
            sidebar,
            textvariable=self.status_text,
            font=DesignToken.get_font(11),
            text_color=DesignToken.GRAY_400,
            anchor="w"
        )
        self.status_label.pack(fill="x", pady=(DesignToken.SPACE_SM, 0))

        # ═══════════════════════════════════════════════════════════
        # PREVIEW
        # ═══════════════════════════════════════════════════════════
        self.preview = ctk.CTkLabel(
            self.main,
            text="Open an image or video",
            font=DesignToken.get_font(13),
            text_color=DesignToken.GRAY_500,
            fg_color=DesignToken.CARD,
            corner_radius=DesignToken.RADIUS_MD
        )
        self.preview.pack(side="left", fill="both", expand=True)

    def _sync_optional_controls(self):
        """Sensitivity only matters with edge detection; fps only for video."""
        if self.edge_detection.get():
            self.sensitivity_frame.pack(fill="x", pady=(0, DesignToken.SPACE_SM))
        else:
            self.sensitivity_frame.pack_forget()
        if self.video is not None:
            self.fps_frame.pack(fill="x", pady=(0, DesignToken.SPACE_SM))
        else:
            self.fps_frame.pack_forget()

    # ═══════════════════════════════════════════════════════════
    # Settings changes
    # ═══════════════════════════════════════════════════════════
    def on_slider(self, name, value):
        if name == "preview_fps":
            self.skipper.set_target_fps(value)
            return
        self.apply_settings(self.settings.replace(**{name: value}))

    def on_toggle(self, name, value):
        self.apply_settings(self.settings.replace(**{name: bool(value)}))
        if name == "edge_detection":
            self._sync_optional_controls()

    def on_shape(self, value):
        self.apply_settings(self.settings.replace(shape=Shape(value)))

    def on_color(self, name, variable):
        text = variable.get()
        try:
            color = parse_color(text)
        except ValueError:
            # revert to current color on invalid input
            variable.set(to_hex(getattr(self.settings, name)))
            self.set_status("error", f"Invalid color: {text}")
            return
        self.apply_settings(self.settings.replace(**{name: color}))

    def swap_colors(self):
        self.apply_settings(self.settings.swap_colors())
        self.fg_text.set(to_hex(self.settings.foreground))
        self.bg_text.set(to_hex(self.settings.background))

    def apply_settings(self, settings):
        if settings == self.settings:
            return
        self.settings = settings
        # Video frames pick the new settings up on the next admitted tick
        if self.video is None:
            self.render_still()

    def sync_controls(self):
        s = self.settings
        self.cell_size.set(s.cell_size)
        self.contrast.set(s.contrast)
        self.overlap.set(s.overlap)
        self.sensitivity.set(s.edge_sensitivity)
        self.invert.set(s.invert)
        self.threshold.set(s.threshold)
        self.edge_detection.set(s.edge_detection)
        self.shape.set(s.shape.value)
        self.fg_text.set(to_hex(s.foreground))
        self.bg_text.set(to_hex(s.background))
        for label, variable, integer in self._value_labels.values():
            label.configure(text=self._format_value(variable.get(), integer))
        self._sync_optional_controls()

    # ═══════════════════════════════════════════════════════════
    # Rendering
    # ═══════════════════════════════════════════════════════════
    def render_still(self):
        if self.source is None:
            return
        self.target = render(self.source, self.settings, self.target)
        self.show(self.target)

    def show(self, image):
        max_w, max_h = self.PREVIEW_SIZE
        scale = min(max_w / image.width, max_h / image.height, 1.0)
        size = (max(1, int(image.width * scale)), max(1, int(image.height * scale)))
        self._preview_image = ctk.CTkImage(light_image=image, dark_image=image, size=size)
        self.preview.configure(image=self._preview_image, text="")

    def start_video_loop(self):
        self.stop_video_loop()
        self.skipper.reset()
        self.clock = PlaybackClock(self.video.fps)
        self.frame = None
        self._tick()

    def stop_video_loop(self):
        if self._tick_job is not None:
            self.after_cancel(self._tick_job)
            self._tick_job = None

    def _tick(self):
        if self.video is None:
            return
        # The clock paces the video; the skipper only decides what gets rendered
        steps = self.clock.advance()
        if self.skipper.admit():
            frame = self.video.advance(steps)
            if frame is not None:
                self.frame = frame
            if self.frame is not None:
                self.target = render(self.frame, self.settings, self.target)
                self.show(self.target)
        else:
            self.video.advance(steps, decode=False)
        self._tick_job = self.after(1000 // DISPLAY_FPS, self._tick)

    # ═══════════════════════════════════════════════════════════
    # Loading
    # ═══════════════════════════════════════════════════════════
    def browse_file(self):
        f = filedialog.askopenfilename(
            filetypes=[("Images and Videos", _ext_pattern(IMAGE_EXTS | VIDEO_EXTS)),
                       ("Images", _ext_pattern(IMAGE_EXTS)),
                       ("Videos", _ext_pattern(VIDEO_EXTS))])
        if f:
            self.load_file(f)

    def load_file(self, path):
        self.load_seq += 1
        seq = self.load_seq
        threading.Thread(target=self._load_async, args=(seq, path), daemon=True).start()

    def _load_async(self, seq, path):
        try:
            if is_video_path(path):
                result = VideoProcessor(path)
            else:
                result = load_image(path)
        except (OSError, ValueError) as e:
            logger.error("Failed to load %s: %s", path, e)
            kind = "Video" if is_video_path(path) else "Image"
            self.after(0, lambda: self._on_load_failed(seq, kind))
            return
        self.after(0, lambda: self._on_loaded(seq, path, result))

    def _on_loaded(self, seq, path, result):
        if seq != self.load_seq:
            # A newer load superseded this one
            if isinstance(result, VideoProcessor):
                result.close()
            return
        self._release_video()
        self.source_path = path
        self.target = None
        self.file_display.set(os.path.basename(path))
        if isinstance(result, VideoProcessor):
            self.source = None
            self.video = result
            self.btn_export.configure(text="EXPORT VIDEO")
            self.start_video_loop()
            self.set_status("success", "Video loaded")
        else:
            self.source = result
            self.btn_export.configure(text="EXPORT IMAGE")
            self.render_still()
            self.set_status("success", "Image loaded")
        self._sync_optional_controls()

    def _on_load_failed(self, seq, kind):
        if seq != self.load_seq:
            return
        self._release_video()
        self.source = None
        self.source_path = None
        self.preview.configure(image=None, text="Open an image or video")
        self.set_status("error", f"{kind} failed to load")

    def _release_video(self):
        self.stop_video_loop()
        if self.video is not None:
            self.video.close()
            self.video = None

    # ═══════════════════════════════════════════════════════════
    # Presets & snippet
    # ═══════════════════════════════════════════════════════════
    def load_preset_file(self):
        f = filedialog.askopenfilename(filetypes=[("Preset", "*.json")])
        if not f:
            return
        try:
            preset = load_preset(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load preset %s: %s", f, e)
            self.set_status("error", "Preset failed to load")
            return
        self.preview_fps.set(int(LIMITS["preview_fps"].clamp(preset.preview_fps)))
        self.skipper.set_target_fps(self.preview_fps.get())
        self.apply_settings(preset.settings)
        self.sync_controls()
        self.set_status("success", "Preset loaded")

    def save_preset_file(self):
        f = filedialog.asksaveasfilename(defaultextension=".json",
                                         filetypes=[("Preset", "*.json")])
        if not f:
            return
        try:
            save_preset(Preset(self.settings, self.preview_fps.get()), f)
        except OSError as e:
            logger.error("Failed to save preset %s: %s", f, e)
            self.set_status("error", "Preset could not be saved")
            return
        self.set_status("success", "Preset saved")

    def export_snippet(self):
        f = filedialog.asksaveasfilename(defaultextension=".py",
                                         initialfile="reticulations_snippet.py",
                                         filetypes=[("Python", "*.py")])
        if not f:
            return
        try:
            write_snippet(self.settings, f)
        except OSError as e:
            logger.error("Failed to write snippet %s: %s", f, e)
            self.set_status("error", "Snippet export failed")
            return
        self.set_status("success", "Snippet exported")

    # ═══════════════════════════════════════════════════════════
    # Export
    # ═══════════════════════════════════════════════════════════
    def start_export(self):
        if self.video is not None:
            self.start_video_export()
        else:
            self.export_still()

    def export_still(self):
        if self.target is None:
            self.set_status("error", "Nothing to export")
            return
        f = filedialog.asksaveasfilename(defaultextension=".png",
                                         initialfile="reticulations-art.png",
                                         filetypes=[("PNG", "*.png")])
        if not f:
            return
        try:
            export_image(self.target, f)
        except (OSError, ValueError) as e:
            logger.error("Image export failed: %s", e)
            self.set_status("error", "Image export failed")
            return
        self.set_status("success", "Image exported")

    def start_video_export(self):
        if self.exporting:
            return
        default_dir = tempfile.gettempdir()
        f = filedialog.asksaveasfilename(defaultextension=".mp4",
                                         initialdir=default_dir,
                                         initialfile="reticulations-video.mp4",
                                         filetypes=[("MP4", "*.mp4")])
        if not f:
            return

        self.exporting = True
        self.btn_export.configure(state="disabled", text="EXPORTING 0%")
        self.progress.set(0)

        threading.Thread(
            target=self.run_video_export,
            args=(self.source_path, f, self.settings, self.preview_fps.get()),
            daemon=True
        ).start()

    def run_video_export(self, source_path, output_path, settings, fps):
        """Export on a worker thread with its own capture."""
        try:
            exporter = VideoExporter(settings, VideoSettings(fps=fps))
            with VideoProcessor(source_path) as video:
                result = exporter.export(
                    video, output_path,
                    progress=lambda p: self.after(0, lambda p=p: self.on_export_progress(p)))
            self.after(0, lambda: self.on_export_success(result))
        except (OSError, ValueError, RuntimeError) as e:
            logger.error("Video export failed: %s", e)
            self.after(0, self.on_export_error)

    def on_export_progress(self, percent):
        self.progress.set(percent / 100)
        self.btn_export.configure(text=f"EXPORTING {percent}%")

    def on_export_success(self, result):
        self.exporting = False
        self.progress.set(0)
        self.btn_export.configure(state="normal", text="EXPORT VIDEO")
        if result.transcoded:
            self.set_status("success", f"Exported {os.path.basename(result.path)}")
        else:
            self.set_status("success", "Exported AVI (MP4 unavailable)")

    def on_export_error(self):
        self.exporting = False
        self.progress.set(0)
        self.btn_export.configure(state="normal", text="EXPORT VIDEO")
        self.set_status("error", "Video export failed")

    # ═══════════════════════════════════════════════════════════
    # Status
    # ═══════════════════════════════════════════════════════════
    def set_status(self, kind, message):
        """Show a transient status message."""
        if self._status_job is not None:
            self.after_cancel(self._status_job)
        color = DesignToken.SUCCESS if kind == "success" else DesignToken.ERROR
        self.status_label.configure(text_color=color)
        self.status_text.set(message)
        self._status_job = self.after(STATUS_TIMEOUT_MS, self.clear_status)

    def clear_status(self):
        self._status_job = None
        self.status_text.set("")

    def on_close(self):
        self._release_video()
        self.destroy()
