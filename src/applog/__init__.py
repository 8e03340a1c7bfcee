def __getattr__(name: str):
    if name == "AppDataManager":
        from applog.appdata import AppDataManager

        return AppDataManager
    if name in {"configure_logging", "get_logger"}:
        from applog import logging as _logging

        return getattr(_logging, name)
    raise AttributeError(f"module 'applog' has no attribute {name}")


__all__ = ["AppDataManager", "configure_logging", "get_logger"]
