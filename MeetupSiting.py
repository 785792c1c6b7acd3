import marimo

__generated_with = "0.17.6"
app = marimo.App(width="medium")


@app.cell
def _():
    import marimo as mo
    import matplotlib.pyplot as plt
    import numpy as np
    from pathlib import Path

    from commute_cost import Commuters, METRICS, point_to_segment_distance, total_cost
    from commute_stats import (
        commute_table,
        cost_grid,
        describe_commutes,
        plot_commute_histogram,
        plot_cost_landscape,
        plot_multistart_costs,
        zip_counts,
    )
    from people_data import attach_coordinates, load_people
    from siting import (
        assign_to_locations,
        compare_methods,
        multistart,
        results_frame,
        search_bounds,
    )
    from siting_map import build_siting_map, save_map
    from zcta_lookup import load_zcta_centroids, nearest_zcta
    return (
        Commuters,
        METRICS,
        Path,
        assign_to_locations,
        attach_coordinates,
        build_siting_map,
        commute_table,
        compare_methods,
        cost_grid,
        describe_commutes,
        load_people,
        load_zcta_centroids,
        mo,
        multistart,
        nearest_zcta,
        np,
        plot_commute_histogram,
        plot_cost_landscape,
        plot_multistart_costs,
        plt,
        point_to_segment_distance,
        results_frame,
        save_map,
        search_bounds,
        total_cost,
        zip_counts,
    )


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    # Where Should We Meet?
    ## Siting meetup spots from home and work ZIP codes
    """)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### A group of people live and work all over the Bay Area and want to pick a place to meet up (or a company wants to pick where to put a satellite office). Everyone gave us two things: their home ZIP code and their work ZIP code. Where should the meetup be so that, all together, people travel as little as possible?

    ### This is a small version of the classic *facility location* problem. With one location it is easy. With several locations it quietly becomes hard, and the point of this notebook is to show *why*: the obvious local search methods get stuck, and a global method is needed.

    ### The plan:
    1. Turn ZIP codes into coordinates
    2. Look at the data (descriptive statistics and a map)
    3. Define what "cost" means (a few distance functions)
    4. Optimize one location with local and global methods
    5. Optimize three locations and see how a local method can land in a local minimum
    """)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### A ZIP code is not a point, but the Census publishes the ZIP Code Tabulation Area (ZCTA) gazetteer, which gives an internal point (INTPTLAT / INTPTLONG) for every ZCTA:

    https://www2.census.gov/geo/docs/maps-data/data/gazetteer/2023_Gazetteer/2023_Gaz_zcta_national.zip

    ### zcta_lookup.py downloads that file and cuts it down to the prefixes we need. Here are the Bay Area ZCTAs our people use:
    """)
    return


@app.cell
def _(load_zcta_centroids):
    zctas = load_zcta_centroids("./zcta_bay_area.csv")
    zctas.head(10)
    return (zctas,)


@app.cell
def _(attach_coordinates, load_people, zctas):
    people = attach_coordinates(load_people("./people.csv"), zctas)
    print(len(people), "people")
    people.head(10)
    return (people,)


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Descriptive statistics ✅
    ### Before optimizing anything it is worth knowing what the commutes look like. The straight-line (great-circle) home to work distance:
    """)
    return


@app.cell
def _(commute_table, describe_commutes, people):
    commutes = commute_table(people)
    describe_commutes(commutes)
    return (commutes,)


@app.cell
def _(commutes, mo, zip_counts):
    mo.hstack(
        [
            mo.vstack([mo.md("**Top home ZIPs**"), zip_counts(commutes, "home_zip", top=5)]),
            mo.vstack([mo.md("**Top work ZIPs**"), zip_counts(commutes, "work_zip", top=5)]),
        ]
    )
    return


@app.cell
def _(commutes, plot_commute_histogram, plt):
    _fig, _ax = plt.subplots(figsize=(7, 4))
    plot_commute_histogram(commutes, ax=_ax)
    _ax
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Blue dots are homes, gray dots are workplaces and the thin lines are straight-line commutes. There is a San Francisco / Oakland cluster, a Peninsula group, and a South Bay cluster, with a lot of people commuting down the Peninsula to Mountain View and Sunnyvale.
    """)
    return


@app.cell
def _(build_siting_map, people, save_map):
    save_map(build_siting_map(people), "people_map.html")
    return


@app.cell
def _(Path, mo):
    mo.iframe(Path("people_map.html").read_text(), height="600px")
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### What does it cost a person to attend a meetup at location $L$? A few reasonable answers, all in miles (commute_cost.py):

    1. **home**: great-circle (haversine) distance from home to $L$
    2. **work**: great-circle distance from work to $L$
    3. **detour**: the extra distance of going home → $L$ → work instead of straight home → work
    4. **segment**: distance from $L$ to the straight line segment between home and work, i.e. "how far off my commute is it?"
    5. **euclidean**: straight-line home to $L$ distance in a flat local projection (nearly identical to *home* at this scale)

    ### With $K$ locations, everyone goes to whichever one is cheapest for them, and the total cost is

    $$
    C(L_1, \dots, L_K) = \sum_{i=1}^{N} \min_{k} \, c_i(L_k)
    $$

    ### That $\min$ is the whole story: it is what makes the multi-location problem hard.
    """)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### The segment distance is the only non-obvious formula. Project $L$ onto the line through home $A$ and work $B$:

    $$
    t = \frac{(L - A)\cdot(B - A)}{\lVert B - A \rVert^2}
    $$

    ### then clamp $t$ to $[0, 1]$ so that points past either end measure to that end, and take the distance from $L$ to $A + t(B - A)$. A quick check with home at (0, 0) and work at (4, 0):
    """)
    return


@app.cell
def _(np, point_to_segment_distance):
    _points = np.array([[2.0, 3.0], [6.0, 0.0], [-3.0, 4.0], [1.0, 0.0]])
    _d = point_to_segment_distance(_points[:, 0], _points[:, 1], 0.0, 0.0, 4.0, 0.0)
    for (_x, _y), _dist in zip(_points, _d):
        print(f"L = ({_x:+.0f}, {_y:+.0f})  ->  distance to segment {_dist:.1f}")
    return


@app.cell
def _(Commuters, METRICS, people, total_cost):
    commuters = Commuters.from_frame(people)
    _lat, _lon = commuters.home_lat.mean(), commuters.home_lon.mean()
    print(f"Cost of a single meetup at the average home ({_lat:.4f}, {_lon:.4f}):")
    for _metric in METRICS:
        print(f"  {_metric:>10}: {total_cost(commuters, _lat, _lon, _metric):8.1f} miles")
    return (commuters,)


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### One location ✅
    ### With a single location, here is the whole cost landscape: the total cost for every possible spot on a grid. The *home* landscape is a smooth bowl (the sum of distances is convex), so any reasonable method should find the bottom. The *segment* landscape is flatter and has a long valley along the Peninsula where most commutes run.
    """)
    return


@app.cell
def _(commuters, cost_grid, plot_cost_landscape, plt, search_bounds):
    bounds_one = search_bounds(commuters, 1)
    _fig, _axes = plt.subplots(1, 2, figsize=(13, 6))
    for _ax, _metric in zip(_axes, ["home", "segment"]):
        plot_cost_landscape(cost_grid(commuters, _metric, bounds_one, resolution=60), ax=_ax, commuters=commuters)
        _ax.set_title(f"Single location cost: {_metric}")
    _fig
    return (bounds_one,)


@app.cell
def _(commuters, compare_methods, results_frame):
    one_site = compare_methods(commuters, 1, "home")
    results_frame(one_site)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Nelder-Mead, L-BFGS-B and Differential Evolution all agree to within a rounding error. For one location the problem is easy.

    ### Three locations
    ### Now give the group three meetup spots. The search space is six numbers (three lat/lon pairs), and the objective has a $\min$ inside it. If a location ends up where nobody is assigned to it, moving it a little changes nothing: its gradient is exactly zero and the local methods never bring it back. Let's start the local methods at the "obvious" spot (the average home) and see.
    """)
    return


@app.cell
def _(commuters, compare_methods, results_frame):
    three_site = compare_methods(commuters, 3, "home")
    results_frame(three_site)
    return (three_site,)


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### On this data the average-home start works out: all three methods end up at, or within a couple of miles of, the same total. That is luck of the layout, not a guarantee. Differential Evolution never needed a start at all. To see how much the local answer depends on where it begins, let's give Nelder-Mead 25 random starting points inside the bounding box and look at where it ends up.
    """)
    return


@app.cell
def _(commuters, multistart):
    starts = multistart(commuters, 3, "home", method="nelder-mead", n_starts=25)
    return (starts,)


@app.cell
def _(plot_multistart_costs, plt, starts, three_site):
    _best_de = min(r.cost for r in three_site if r.method == "differential-evolution")
    _fig, _ax = plt.subplots(figsize=(7, 4))
    plot_multistart_costs(starts, ax=_ax, reference=_best_de)
    _ax
    return


@app.cell
def _(results_frame, starts):
    results_frame(starts)[["cost", "n_evals", "lat_1", "lon_1", "lat_2", "lon_2", "lat_3", "lon_3"]].round(4)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Every run "converged", yet they landed on many different answers, and some of them are far worse than the Differential Evolution result. Those are the local minima. A single local run from an unlucky start reports "success" and stops there. Multistart helps (the best of many runs usually gets close), but you need to know to do it, and it gets more expensive as $K$ grows.

    ### Here is the Differential Evolution answer on the map. Each home is connected to the meetup it would attend:
    """)
    return


@app.cell
def _(assign_to_locations, build_siting_map, commuters, people, save_map, three_site):
    best_three = min(three_site, key=lambda r: r.cost)
    _assigned, _ = assign_to_locations(commuters, best_three.locations, "home")
    save_map(
        build_siting_map(people, locations=best_three.locations, assignments=_assigned, show_commutes=False),
        "meetup_map.html",
    )
    return (best_three,)


@app.cell
def _(Path, mo):
    mo.iframe(Path("meetup_map.html").read_text(), height="600px")
    return


@app.cell
def _(best_three, nearest_zcta, zctas):
    _codes, _dists = nearest_zcta(zctas, best_three.locations[:, 0], best_three.locations[:, 1])
    for _j, (_code, _dist) in enumerate(zip(_codes, _dists), start=1):
        print(f"Meetup {_j}: nearest ZIP {_code} ({_dist:.2f} miles from its internal point)")
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Meeting on the way
    ### The *segment* metric asks a different question: where can people stop on their way between home and work? With two locations the answer shifts toward the commute corridors rather than the residential clusters.
    """)
    return


@app.cell
def _(commuters, compare_methods, results_frame):
    two_site_segment = compare_methods(commuters, 2, "segment")
    results_frame(two_site_segment)
    return


@app.cell(hide_code=True)
def _(mo):
    mo.md(r"""
    ### Takeaways
    1. One location under a distance-sum cost is a convex problem and any method works.
    2. Several locations make the cost a minimum of convex pieces, which is not convex. Local methods (Nelder-Mead, L-BFGS-B) return whichever local minimum is closest to their start.
    3. A global method like Differential Evolution, or at least many random restarts, is needed to trust the answer.

    ### The notebook imports the helper scripts as modules, so install the repo once from its root:

    bash: pip install -e .

    ### To run the same analysis outside the notebook, see helper_scripts/site_meetups.py:

    bash: python helper_scripts/site_meetups.py --k 3 --method all --map meetup_map.html

    ### And to build a centroid file for another region from the full Census gazetteer:

    bash: python helper_scripts/zcta_lookup.py --download --prefix 940 --prefix 941 --out zcta_bay_area.csv
    """)
    return


if __name__ == "__main__":
    app.run()
