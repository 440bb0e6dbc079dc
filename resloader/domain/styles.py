"""Traitement des feuilles de style: minification, regroupement par média, images référencées."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping

import rcssmin

# url(...) avec ou sans guillemets; les data: et URL absolues ne sont pas des fichiers locaux.
_CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)([^'")]+)\1\s*\)""", re.IGNORECASE)
_REMOTE_PREFIXES = ("data:", "http:", "https:", "//", "/")


def minify_css(css: str) -> str:
    """Minifie une feuille de style."""
    return rcssmin.cssmin(css)


def minify_style_pairs(
    style_pairs: Mapping[str, str | list[str]],
) -> dict[str, str | list[str]]:
    """Minifie chaque texte d'un mapping média -> texte(s), en conservant la forme."""
    out: dict[str, str | list[str]] = {}
    for media, style in style_pairs.items():
        if isinstance(style, list):
            out[media] = [minify_css(css) for css in style if isinstance(css, str)]
        elif isinstance(style, str):
            out[media] = minify_css(style)
    return out


def make_combined_styles(style_pairs: Mapping[str, str | list[str]]) -> list[str]:
    """Enveloppe les styles dans des blocs `@media` si besoin et aplatit en liste.

    Les textes vides sont ignorés; le média `all` (ou vide) n'est pas enveloppé.
    """
    out: list[str] = []
    for media, styles in style_pairs.items():
        if isinstance(styles, str):
            styles = [styles]
        for style in styles:
            style = style.strip()
            if not style:
                continue
            if media in ("", "all"):
                out.append(style)
            else:
                indented = ("\t" + style).replace("\n", "\n\t")
                out.append(f"@media {media} {{\n{indented}}}")
    return out


def find_local_image_refs(css: str, css_path: str) -> list[str]:
    """Liste les fichiers locaux référencés par `url(...)` dans `css`.

    Les chemins sont résolus relativement au dossier de la feuille de style; l'ordre d'apparition est
    conservé, sans doublons.
    """
    base_dir = os.path.dirname(css_path)
    refs: list[str] = []
    for match in _CSS_URL_RE.finditer(css):
        url = match.group(2).strip()
        if not url or url.lower().startswith(_REMOTE_PREFIXES):
            continue
        url = url.split("?", 1)[0].split("#", 1)[0]
        path = os.path.normpath(os.path.join(base_dir, url))
        if path not in refs:
            refs.append(path)
    return refs
