import numpy as np
import pint

units = pint.UnitRegistry(autoconvert_offset_to_baseunit = True)

# Raw RAP measurements are integers in tenths of a millimetre
units.define('tenth_millimeter = 0.1 * millimeter')

RAW_UNITS = 'tenth_millimeter'

def precipitation(value, dest = 'millimeter'):
    if value is None:
        return None
    return units.Quantity(value, RAW_UNITS).to(dest)

def masked_array(data, data_units = None, **kwargs):
    if data_units is None:
        data_units = data.units
    return units.Quantity(np.ma.masked_array(data, **kwargs), data_units)

def precipitation_grid(grid, dest = 'millimeter'):
    mm = np.ma.masked_array(grid, dtype = 'float64') * units.Quantity(1, RAW_UNITS).to(dest).magnitude
    return masked_array(mm, dest)

del pint
