"""RU: Реализации CLI-скриптов.

Модули можно запускать через `python -m video_go_faster.scripts.<module>`.

EN: CLI script implementations.

These modules can be invoked via `python -m video_go_faster.scripts.<module>`.
"""
