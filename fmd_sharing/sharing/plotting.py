import matplotlib.pyplot as plt
import mplhep as hep

from fmd_sharing.sharing.cuts import RING_LABELS
from fmd_sharing.sharing.diagnostics import ELOSS_LABEL


def plot_ring_eloss(sink, ring_key, output_file=None):
    """
    Energy loss in one ring before and after the sharing correction, and the
    single/double/triple hit spectra.

    Parameters:
    -----------
    sink : HistogramSink
        Filled diagnostics
    ring_key : tuple
        (detector, ring)
    output_file : str, optional
        If provided, save plot to this file
    """
    histos = sink[ring_key]
    histos.flush()

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5))

    hep.histplot(histos.before, ax=ax1, label='reconstruction', linestyle='--')
    hep.histplot(histos.after, ax=ax1, label='sharing corrected')
    ax1.set_xlabel(ELOSS_LABEL, fontsize=18)
    ax1.set_ylabel('Strips', fontsize=18)
    ax1.set_yscale('log')
    ax1.legend()
    ax1.set_title(histos.name)

    for name, label in (('single', 'single strip'), ('double', 'two strips'), ('triple', 'three strips')):
        hep.histplot(getattr(histos, name), ax=ax2, label=label)
    ax2.set_xlabel(ELOSS_LABEL, fontsize=18)
    ax2.set_ylabel('Hits', fontsize=18)
    ax2.set_yscale('log')
    ax2.legend()

    plt.tight_layout()
    if output_file:
        plt.savefig(output_file)
    return fig


def plot_before_after(sink, ring_key, output_file=None):
    """Correlation of the signal before and after merging for one ring."""
    histos = sink[ring_key]
    histos.flush()

    fig, ax = plt.subplots(figsize=(7, 6))
    hep.hist2dplot(histos.before_after, ax=ax, cmin=1)
    ax.set_xlabel(r'$\Delta E/\Delta E_{mip}$ before', fontsize=18)
    ax.set_ylabel(r'$\Delta E/\Delta E_{mip}$ after', fontsize=18)
    ax.set_title(histos.name)

    plt.tight_layout()
    if output_file:
        plt.savefig(output_file)
    return fig


def plot_cut_summary(low_cuts, high_cuts, output_file=None):
    """
    Low and high cuts per ring versus eta.

    Parameters:
    -----------
    low_cuts, high_cuts : hist.Hist
        Output of :func:`fmd_sharing.sharing.cuts.tabulate_cuts`
    output_file : str, optional
        If provided, save plot to this file
    """
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 5), sharex=True)

    for ax, cuts, title in ((ax1, low_cuts, 'Low cuts used'), (ax2, high_cuts, 'High cuts used')):
        for label in RING_LABELS:
            hep.histplot(cuts[:, label], ax=ax, label=label)
        ax.set_xlabel(r'$\eta$', fontsize=18)
        ax.set_ylabel(ELOSS_LABEL, fontsize=18)
        ax.set_title(title)
        ax.legend()

    plt.tight_layout()
    if output_file:
        plt.savefig(output_file)
    return fig
