"""Musical glyph recognition library.

This package recognizes musical symbols on a scanned page. The page is
split into independent systems which are processed in parallel. Within
each system, staff line filaments are completed, glyphs are classified
against a trained shape model, and adjacent glyphs are merged into
compound symbols when the classifier confirms the merge.

The main processing pipeline consists of:
1. Image binarization
2. Extraction of glyphs as connected components
3. Partition of glyphs into systems
4. Parallel system steps: staff lines, symbols, compound patterns

Example:
    Basic usage through the pipeline API:

    >>> from glyph_omr.pipeline import process_sheet
    >>> from glyph_omr.models import ProcessingParameters
    >>>
    >>> image = cv2.imread("page.png")
    >>> sheet, result = process_sheet(image, interline=20, bands=[(0, 400), (400, 800)])
"""
