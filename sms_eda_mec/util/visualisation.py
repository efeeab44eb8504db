import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns


def plot_progress(iteration, pop, pop_obj, offspring, offspring_obj, rebel_pop=None,
                  rebel_pop_obj=None, fig=None):
    """
    Draw parents, offspring and rebels of one iteration for assessing diversity

    Parameters:
    -----------
    iteration : int
        Current iteration, shown in the titles
    pop, pop_obj : np.ndarray
        Parents and their objectives
    offspring, offspring_obj : np.ndarray
        Offspring and their objectives
    rebel_pop, rebel_pop_obj : np.ndarray, optional
        Rebels and their objectives
    fig : matplotlib.figure.Figure, optional
        Figure to draw into; reused between iterations

    Returns:
    --------
    matplotlib.figure.Figure
    """
    sns.set_style("white")
    palette = sns.color_palette("husl", 3)
    num_vars = pop.shape[1]

    if fig is None:
        fig = plt.figure(figsize=(6, 8 if num_vars == 2 else 4))
    fig.clf()

    # The search space is only drawn for two variable problems
    if num_vars == 2:
        ax_search = fig.add_subplot(2, 1, 1)
        ax_obj = fig.add_subplot(2, 1, 2)
        _scatter_sets(ax_search, pop, offspring, rebel_pop, palette)
        ax_search.set_title(f"Search space - parents blue; offspring red - t={iteration}")
    else:
        ax_obj = fig.add_subplot(1, 1, 1)

    _scatter_sets(ax_obj, pop_obj, offspring_obj, rebel_pop_obj, palette)
    ax_obj.set_title(f"Objectives - parents blue; offspring red - t={iteration}")

    fig.canvas.draw_idle()
    plt.pause(0.001)
    return fig


def _scatter_sets(ax, parents, offspring, rebels, palette):
    ax.scatter(parents[:, 0], parents[:, 1], facecolors="none", edgecolors=palette[2], label="parents")
    ax.scatter(offspring[:, 0], offspring[:, 1], s=8, color=palette[0], label="offspring")
    if rebels is not None and len(rebels):
        rebels = np.atleast_2d(rebels)
        ax.scatter(rebels[:, 0], rebels[:, 1], marker="*", color=palette[1], label="rebels")
    ax.legend(loc="best", fontsize="small")


def plot_pareto_front(pareto_front, title="Final Pareto front", ax=None, label=None):
    """
    Scatter the first two objectives of a front

    Parameters:
    -----------
    pareto_front : np.ndarray
        Objective matrix of the front
    title : str, optional
        Plot title
    ax : matplotlib.axes.Axes, optional
        Axes to draw into, a new figure is created if not given
    label : str, optional
        Legend entry of the front

    Returns:
    --------
    matplotlib.axes.Axes
    """
    sns.set_style("white")
    if ax is None:
        _, ax = plt.subplots(figsize=(5, 4))
    order = np.argsort(pareto_front[:, 0])
    ax.plot(pareto_front[order, 0], pareto_front[order, 1], "o-", markersize=4, label=label)
    ax.set_xlabel("f0")
    ax.set_ylabel("f1")
    ax.set_title(title)
    return ax
