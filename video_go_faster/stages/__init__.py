"""RU: Модели данных стадии обработки видео.

Скрипт `scripts/video_processor.py` строит команду FFmpeg и запускает её,
оркестратор (`pipeline.py`) гоняет его по всем скоростям. Здесь — только
неизменяемые структуры, которыми они обмениваются.

EN: Data models for the video processing stage.

The `scripts/video_processor.py` module builds and runs the FFmpeg command and
the orchestrator (`pipeline.py`) drives it across every speed. This package
holds the immutable structures they exchange.
"""
