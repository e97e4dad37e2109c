"""JSON and Excel report generators."""
