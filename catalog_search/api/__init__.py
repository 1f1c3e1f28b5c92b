"""
API модуль - HTTP интерфейс для веб-слоя
"""
