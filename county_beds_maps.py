#!/usr/bin/env python3
# ==============================================================================
# Copyright (c) 2025 Aaron Johnson, Drexel University
# Licensed under the MIT License - see LICENSE file for details
# ==============================================================================
"""
Figures for the county beds analysis:
  1. Histogram of beds per 1,000 residents across counties.
  2. Contiguous-US choropleth of beds per 1,000 (continuous scale).
  3. Contiguous-US choropleth of beds per 1,000 in quantile classes.
  4. Single-state choropleth of beds per 1,000.

Counties without data are drawn in a separate 'No data' style so that gaps
stay visible instead of disappearing from the map.
"""

import logging
from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from county_beds_config import NON_CONTIGUOUS_STATEFP
from county_geometry import order_vertices_by_metric, vertices_to_polygons
from county_names import STATE_NAME_BY_FIPS

NO_DATA_LABEL = "No data"
NO_DATA_COLOR = "#D3D3D3"
# Light to dark blue, as in the hospital category maps
CLASS_COLORS = ["#deebf7", "#9ecae1", "#6baed6", "#4292c6", "#2171b5", "#084594", "#08306b"]

NON_CONTIGUOUS_REGIONS = {STATE_NAME_BY_FIPS[fp].lower() for fp in NON_CONTIGUOUS_STATEFP}


def classify_metric(values: pd.Series, n_classes: int = 5) -> pd.Series:
    """
    Bins a metric into quantile classes, with an explicit 'No data' class
    for missing values. Returns an ordered categorical Series.
    """
    valid = values.dropna()
    if valid.nunique() >= 2:
        bins = pd.qcut(valid, q=n_classes, duplicates="drop")
        labels = [f"{iv.left:.2f} to {iv.right:.2f}" for iv in bins.cat.categories]
        binned = bins.cat.rename_categories(labels).astype(str)
    else:
        labels = [f"{valid.iloc[0]:.2f}"] if len(valid) else []
        binned = valid.map(lambda v: f"{v:.2f}")

    out = pd.Series(NO_DATA_LABEL, index=values.index, dtype=object)
    out.loc[binned.index] = binned
    return pd.Series(pd.Categorical(out, categories=labels + [NO_DATA_LABEL], ordered=True), index=values.index)


def plot_beds_histogram(counties: pd.DataFrame, column: str, fig_path: Path) -> Path:
    """Distribution of the per-capita metric across counties."""
    values = counties[column].dropna()
    sns.set_theme(style="whitegrid")
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.histplot(x=values, bins=50, kde=True, ax=ax, color="#4292c6")
    median = values.median()
    ax.axvline(median, color="red", linestyle="--", label=f"Median: {median:.2f}")
    ax.set_title("Distribution of Qualifying Hospital Beds per 1,000 Residents by County")
    ax.set_xlabel("Beds per 1,000 residents")
    ax.set_ylabel("Number of counties")
    ax.legend()
    fig.savefig(fig_path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    logging.info(f"Saved beds histogram to {fig_path}")
    return fig_path


def _finish_map(ax, title):
    ax.set_title(title, fontsize=16, pad=20)
    ax.set_xlabel("")
    ax.set_ylabel("")
    ax.set_xticks([])
    ax.set_yticks([])


def plot_continuous_map(polygons, column: str, title: str, fig_path: Path, contiguous: bool = True) -> Path:
    """Choropleth on a continuous color scale."""
    fig, ax = plt.subplots(figsize=(14, 10))
    polygons.plot(
        column=column,
        ax=ax,
        cmap="Blues",
        edgecolor="black",
        linewidth=0.1,
        legend=True,
        legend_kwds={"label": "Beds per 1,000 residents", "shrink": 0.6},
        missing_kwds={"color": NO_DATA_COLOR, "hatch": "///", "edgecolor": "white", "label": NO_DATA_LABEL},
    )
    _finish_map(ax, title)
    if contiguous:
        ax.set_xlim([-125, -66.5])
        ax.set_ylim([23.5, 49.5])
    fig.patch.set_facecolor("white")
    fig.savefig(fig_path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    logging.info(f"Saved map to {fig_path}")
    return fig_path


def plot_class_map(polygons, column: str, n_classes: int, title: str, fig_path: Path) -> Path:
    """Choropleth of quantile classes with an explicit 'No data' category."""
    classes = classify_metric(polygons[column], n_classes)
    categories = list(classes.cat.categories)
    data_categories = [c for c in categories if c != NO_DATA_LABEL]
    palette = dict(zip(data_categories, CLASS_COLORS[-len(data_categories):] if data_categories else []))
    palette[NO_DATA_LABEL] = NO_DATA_COLOR

    fig, ax = plt.subplots(figsize=(14, 10))
    polygons.plot(ax=ax, color=classes.astype(str).map(palette).tolist(), edgecolor="black", linewidth=0.1)
    _finish_map(ax, title)
    ax.set_xlim([-125, -66.5])
    ax.set_ylim([23.5, 49.5])

    legend_elements = [
        plt.Rectangle((0, 0), 1, 1, fc=palette[c], edgecolor="lightgray", label=c) for c in categories
    ]
    fig.tight_layout(rect=[0.02, 0.12, 0.98, 0.95])
    ax.legend(
        handles=legend_elements,
        loc="upper center",
        bbox_to_anchor=(0.5, -0.02),
        ncol=3,
        fontsize=10,
        frameon=True,
        facecolor="white",
        edgecolor="lightgray",
        title="Beds per 1,000 residents",
    )
    fig.patch.set_facecolor("white")
    fig.savefig(fig_path, dpi=300, bbox_inches="tight")
    plt.close(fig)
    logging.info(f"Saved class map to {fig_path}")
    return fig_path


def render_all(counties: pd.DataFrame, joined_vertices: pd.DataFrame, fig_dir: Path,
               column: str = "beds_per_1000", state: str = "california", n_classes: int = 5) -> List[Path]:
    """
    Produces the histogram and the three maps. A figure that fails is logged
    and skipped; the paths of the figures written are returned.
    """
    logging.info("\n" + "=" * 20 + " GENERATING FIGURES " + "=" * 20)
    fig_dir = Path(fig_dir)
    fig_dir.mkdir(parents=True, exist_ok=True)
    written = []

    try:
        written.append(plot_beds_histogram(counties, column, fig_dir / "beds_per_1000_histogram.png"))
    except Exception as e:
        logging.error(f"Could not generate beds histogram: {e}", exc_info=True)
        plt.close("all")

    # Groups without data are drawn first so county outlines with data sit on top
    polygons = vertices_to_polygons(order_vertices_by_metric(joined_vertices, column))
    contiguous = polygons[~polygons["region"].isin(NON_CONTIGUOUS_REGIONS)]

    try:
        written.append(plot_continuous_map(
            contiguous, column, "Qualifying Hospital Beds per 1,000 Residents",
            fig_dir / "beds_per_1000_map.png",
        ))
    except Exception as e:
        logging.error(f"Could not generate continuous map: {e}", exc_info=True)
        plt.close("all")

    try:
        written.append(plot_class_map(
            contiguous, column, n_classes, "Qualifying Hospital Beds per 1,000 Residents (Quantile Classes)",
            fig_dir / "beds_per_1000_classes_map.png",
        ))
    except Exception as e:
        logging.error(f"Could not generate class map: {e}", exc_info=True)
        plt.close("all")

    state_polygons = polygons[polygons["region"] == state.lower()]
    if state_polygons.empty:
        logging.warning(f"No county polygons found for state '{state}'. Skipping state map.")
    else:
        try:
            written.append(plot_continuous_map(
                state_polygons, column, f"Qualifying Hospital Beds per 1,000 Residents: {state.title()}",
                fig_dir / f"beds_per_1000_{state.lower().replace(' ', '_')}_map.png", contiguous=False,
            ))
        except Exception as e:
            logging.error(f"Could not generate state map: {e}", exc_info=True)
            plt.close("all")

    logging.info(f"{len(written)} figures written to {fig_dir}")
    return written
