"""Preview assembly: intent + book + filters + risk settings to TradePreview."""

from tradepreview.preview.assembler import PreviewAssembler, PreviewResult, build_preview

__all__ = ["PreviewAssembler", "PreviewResult", "build_preview"]
