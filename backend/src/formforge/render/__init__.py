"""Render instructions for UI toolkits."""

from formforge.render.dispatcher import RenderDispatcher, RenderInstruction

__all__ = ["RenderDispatcher", "RenderInstruction"]
