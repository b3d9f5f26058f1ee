"""Media handling for templates."""

from .image_injector import ImageAsset, ImageInjector

__all__ = ["ImageAsset", "ImageInjector"]
