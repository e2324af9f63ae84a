"""Camera frame conversions to baseline JPEG, BMP and 24-bit pixel buffers."""

__version__ = "0.1.0"
__all__ = ["formats", "yuv", "jpeg_tables", "jpeg_encoder", "to_jpg", "to_bmp"]