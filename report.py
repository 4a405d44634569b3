from rap import MISSING_VALUE

DATETIME_FMT = '%Y-%m-%d %H:%M:%S'

def pretty_print(rap, fobj):
    print_management_part(rap, fobj)
    print_data_part(rap.index, fobj)

def print_management_part(rap, fobj):
    def write(line = ''):
        fobj.write(line + '\n')

    grid = rap.grid

    write('Management part - comment')
    write('    identifier: {}'.format(rap.comment.identifier))
    write('    version: {}'.format(rap.comment.version))
    write('    creator comment: {}'.format(rap.comment.creator_comment))
    write('Management part - data index')
    write('    number of data: {:d}'.format(len(rap.index)))
    write('    date-time               elem   start-pos')
    write('    ' + '-' * 40)
    for entry in rap.index:
        pos = '0x{:X}'.format(entry.data_start)
        write('    {:<20}{:>8}{:>12}'.format(entry.timestamp.strftime(DATETIME_FMT), entry.element, pos))
    write('Management part - grid definition')
    write('    map type: {:d}'.format(grid.map_type))
    write('    start latitude: {:d}'.format(grid.start_latitude))
    write('    start longitude: {:d}'.format(grid.start_longitude))
    write('    cell width: {:d}'.format(grid.cell_width))
    write('    cell height: {:d}'.format(grid.cell_height))
    write('    horizontal cells: {:d}'.format(grid.horizontal_count))
    write('    vertical cells: {:d}'.format(grid.vertical_count))
    write('Management part - compression')
    write('    method: {:d}'.format(rap.compression.method))
    write('    number of levels: {:d}'.format(len(rap.level_values)))
    write('    level       value')
    write('    ' + '-' * 17)
    for level, value in enumerate(rap.level_values):
        write('{:>9}{:>12}'.format(level, 'None' if value == MISSING_VALUE else value))
    write('    number of level repetitions: {:d}'.format(len(rap.level_repetitions)))
    write('    level  repetition')
    write('    ' + '-' * 17)
    for rep in rap.level_repetitions:
        write('{:>9}{:>12}'.format(rep.level, rep.repeat))

def print_data_part(index, fobj):
    fobj.write('Data part\n')
    fobj.write('date-time                 compressed    radar-status              stations\n')
    fobj.write('-' * 74 + '\n')
    for entry in index:
        fobj.write('{:<20}{:>16}    {:<20}{:>14}\n'.format(entry.timestamp.strftime(DATETIME_FMT), entry.compressed_size, '0x{:016X}'.format(entry.radar_status), entry.station_count))
