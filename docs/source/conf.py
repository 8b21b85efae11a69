# Sphinx configuration for NNICA-Python.
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import os
import sys

# Document the package from the source tree
sys.path.insert(0, os.path.abspath("../../src"))

project = "NNICA-Python"
copyright = "2025, NNICA-Python developers"
author = "NNICA-Python developers"

# -- General -----------------------------------------------------------------

extensions = [
    "numpydoc",
    "sphinx_gallery.gen_gallery",
    "sphinx.ext.autodoc",
    "sphinx.ext.autosummary",
    "sphinx.ext.intersphinx",
    "sphinx_design",
]
templates_path = ["_templates"]
exclude_patterns = []

intersphinx_mapping = {
    "numpy": ("https://numpy.org/doc/stable/", None),
    "sklearn": ("https://scikit-learn.org/stable/", None),
    "torch": ("https://docs.pytorch.org/docs/stable/", None),
}

# -- HTML --------------------------------------------------------------------

html_theme = "shibuya"
html_static_path = ["_static"]
html_theme_options = {
    "nav_links": [
        {"title": "API", "url": "api/index"},
        {"title": "Examples", "url": "auto_examples/index"},
    ],
}

# -- Gallery -----------------------------------------------------------------

sphinx_gallery_conf = {
    "examples_dirs": ["examples"],
    "gallery_dirs": ["auto_examples"],
    "filename_pattern": r"plot_",
    "download_all_examples": False,
    "remove_config_comments": True,
    "backreferences_dir": "gen_modules/backreferences",
    "doc_module": ("nnica",),
}

# -- API docs ----------------------------------------------------------------

# Class pages come from numpydoc, not from autosummary stubs
autosummary_generate = False
numpydoc_show_class_members = True
numpydoc_class_members_toctree = False
numpydoc_show_inherited_class_members = False
numpydoc_xref_aliases = {
    "BaseEstimator": "sklearn.base.BaseEstimator",
    "TransformerMixin": "sklearn.base.TransformerMixin",
    "FastICA": "sklearn.decomposition.FastICA",
    "InvalidArgumentError": "nnica.InvalidArgumentError",
    "NumericalFailureError": "nnica.NumericalFailureError",
}

autodoc_default_options = {
    "members": True,
    "undoc-members": False,
    "inherited-members": False,
    "show-inheritance": True,
}
