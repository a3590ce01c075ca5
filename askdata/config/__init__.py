# askdata.config package
# Static configuration: the tool catalog and runtime settings.
