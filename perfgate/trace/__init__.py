from perfgate.trace.export import TraceExportConfig, export_trace, resolve_trace_export_config

__all__ = ["TraceExportConfig", "export_trace", "resolve_trace_export_config"]
