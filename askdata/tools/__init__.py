# askdata/tools package
# Command-line entry points.
