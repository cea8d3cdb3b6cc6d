"""Gradio layout composition for the image editor."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import gradio as gr

from config.settings import AppConfig
from modules.optimization.edit_presets import EditPresetRegistry, default_registry
from modules.optimization.prompt_builder import AspectPreference
from modules.services.storage_service import StorageService
from modules.ui.callbacks import UPLOAD_HINT, build_callbacks

ASPECT_LABELS = {
    AspectPreference.AUTO: "Auto",
    AspectPreference.LANDSCAPE: "Landscape (16:9)",
    AspectPreference.PORTRAIT: "Portrait (9:16)",
}


def _load_preset_registry(config: AppConfig) -> EditPresetRegistry:
    registry = default_registry()
    presets_path = config.metadata.get("presets_path")
    path = Path(presets_path) if presets_path else Path(config.assets_dir) / "presets.json"
    registry.load_from_file(path)
    return registry


def build_app(config: AppConfig) -> Any:
    """Compose and return the Gradio application."""
    registry = _load_preset_registry(config)
    storage = StorageService(config.output_dir)

    callbacks_map = build_callbacks(
        config,
        preset_registry=registry,
        storage=storage,
    )
    aspect_choices = [(label, aspect.value) for aspect, label in ASPECT_LABELS.items()]

    with gr.Blocks(title="AI Image Editor") as demo:
        gr.Markdown("## AI Image Editor")
        session_state = gr.State(None)

        with gr.Row():
            with gr.Column(scale=2):
                upload = gr.File(
                    label="Upload image (drag and drop or click)",
                    file_types=["image"],
                    type="filepath",
                )
                original_view = gr.Image(
                    label="Original",
                    type="pil",
                    interactive=False,
                    height=160,
                )

                gr.Markdown("### 1. Isolate an object")
                gr.Markdown("Click a category to isolate an item on a white background.")
                preset_buttons = []
                with gr.Row():
                    for preset in registry.list_presets():
                        preset_buttons.append((preset.name, gr.Button(preset.label, size="sm")))

                gr.Markdown("### 2. Add a new context")
                gr.Markdown(
                    'Describe a new scene for the isolated object, for example "on a wooden table".'
                )
                aspect = gr.Radio(
                    label="Aspect ratio",
                    choices=aspect_choices,
                    value=AspectPreference.AUTO.value,
                )
                context_prompt = gr.Textbox(
                    label="Scene",
                    lines=3,
                    placeholder="on a beach at sunset...",
                )
                context_btn = gr.Button("Generate context", variant="primary")

                gr.Markdown("### General edit (optional)")
                prompt = gr.Textbox(
                    label="Instruction",
                    lines=3,
                    placeholder="add a vintage effect...",
                )
                edit_btn = gr.Button("Generate edit", variant="primary")

            with gr.Column(scale=3):
                current_view = gr.Image(label="Current image", type="pil", interactive=False)
                status = gr.Markdown(UPLOAD_HINT)
                with gr.Row():
                    prev_btn = gr.Button("← Previous")
                    download_btn = gr.Button("Download")
                    next_btn = gr.Button("Next →")
                download_file = gr.File(label="Exported file", interactive=False)
                reset_btn = gr.Button("Start over", variant="stop")

        views = [session_state, original_view, current_view, status]
        submit_outputs = views + [prompt, context_prompt]

        upload.upload(
            fn=callbacks_map["on_upload"],
            inputs=[upload, session_state],
            outputs=views,
        )

        for preset_name, button in preset_buttons:
            button.click(
                fn=callbacks_map["make_preset_handler"](preset_name),
                inputs=[session_state, prompt, context_prompt],
                outputs=submit_outputs,
            )

        context_btn.click(
            fn=callbacks_map["on_submit_context"],
            inputs=[session_state, context_prompt, aspect, prompt],
            outputs=submit_outputs,
        )

        edit_btn.click(
            fn=callbacks_map["on_submit_edit"],
            inputs=[session_state, prompt, context_prompt],
            outputs=submit_outputs,
        )

        prev_btn.click(fn=callbacks_map["on_prev"], inputs=[session_state], outputs=views)
        next_btn.click(fn=callbacks_map["on_next"], inputs=[session_state], outputs=views)
        download_btn.click(
            fn=callbacks_map["on_download"],
            inputs=[session_state],
            outputs=[download_file, status],
        )
        reset_btn.click(
            fn=callbacks_map["on_reset"],
            inputs=[session_state],
            outputs=submit_outputs,
        )

    return demo
