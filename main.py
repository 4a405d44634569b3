import argparse
import datetime
import logging
import os
import sys

import matplotlib.pyplot as plt
import numpy as np

import colors
from export import write_csv
from rap import DataNotRecordedError, RapFile, RapFormatError
from report import pretty_print

FILE_DATETIME_FMT = '%Y%m%dT%H%M%S'
TIMESTAMP_FMT = '%Y-%m-%dT%H:%M'
COLORTABLE = 'jma_precip'

log = logging.getLogger(__name__)
log.addHandler(logging.StreamHandler())
log.setLevel(logging.INFO)

def parse_timestamp(s):
    try:
        return datetime.datetime.strptime(s, TIMESTAMP_FMT)
    except ValueError:
        raise argparse.ArgumentTypeError('expected YYYY-MM-DDTHH:MM, got {!r}'.format(s))

def parse_arguments(argv = None):
    parser = argparse.ArgumentParser(description = 'Decode a RAP precipitation-analysis file.')
    parser.add_argument('file', help = 'Path to the RAP file')
    parser.add_argument('--dest', help = 'Directory receiving one CSV per recorded observation')
    parser.add_argument('--plot', metavar = 'TIMESTAMP', type = parse_timestamp, help = 'Plot the observation at YYYY-MM-DDTHH:MM')
    parser.add_argument('--plot-output', help = 'Save the plot to this file instead of showing it')
    parser.add_argument('-v', '--verbose', action = 'store_true', help = 'Log every parsed block')
    return parser.parse_args(argv)

def export_all(rap, dest_dir):
    os.makedirs(dest_dir, exist_ok = True)
    paths = []
    for timestamp in rap.timestamps:
        path = os.path.join(dest_dir, timestamp.strftime(FILE_DATETIME_FMT) + '.csv')
        with open(path, 'w', newline = '') as fobj, rap.values(timestamp) as values:
            write_csv(fobj, values, rap.grid.cell_width_degrees, rap.grid.cell_height_degrees)
        paths.append(path)
    return paths

def plot(rap, timestamp, output = None):
    data = rap.get_grid(timestamp)

    # pcolormesh takes cell edges, the grid stores cell centres
    half_width = rap.grid.cell_width_degrees / 2
    half_height = rap.grid.cell_height_degrees / 2
    lons = rap.get_longitudes()
    lats = rap.get_latitudes()
    lon_edges = np.append(lons - half_width, lons[-1] + half_width)
    lat_edges = np.append(lats + half_height, lats[-1] - half_height)

    norm, cmap = colors.registry.get_with_boundaries(COLORTABLE, colors.PRECIP_BOUNDARIES)
    fig, ax = plt.subplots(1, 1, figsize = (8, 8))
    ax.pcolormesh(lon_edges, lat_edges, data, norm = norm, cmap = cmap)
    ax.set_aspect('equal', 'datalim')
    ax.set_title('{} {}'.format(rap.comment.identifier, timestamp.strftime('%Y-%m-%d %H:%M')))

    if output:
        fig.savefig(output)
        plt.close(fig)
    else:
        plt.show()
    return fig

def main(argv = None):
    args = parse_arguments(argv)
    if args.verbose:
        for name in ('rap', 'export', 'colors'):
            logging.getLogger(name).setLevel(logging.DEBUG)

    try:
        rap = RapFile(args.file)
    except (IOError, RapFormatError) as e:
        log.error('%s: %s', args.file, e)
        return 1

    pretty_print(rap, sys.stdout)

    try:
        if args.dest:
            paths = export_all(rap, args.dest)
            log.info('Exported %d observations to %s', len(paths), args.dest)
        if args.plot:
            plot(rap, args.plot, args.plot_output)
    except (IOError, RapFormatError, DataNotRecordedError) as e:
        log.error('%s: %s', args.file, e)
        return 1

    return 0

if __name__ == '__main__':
    sys.exit(main())
