"""
Built-in visualization adapters.

One module per library (katex, diagrams, echarts, leaflet, d3, mapbox). The
descriptors that wire them into the runtime live in ``loom.adapters.catalog``.
"""
