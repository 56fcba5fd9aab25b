"""
Settings Generator Utilities
"""
import ast
import configobj
import numpy as np
import flutterpy.utils.exceptions as exceptions
import flutterpy.utils.cout_utils as cout


def cast(k, v, pytype, default):
    try:
        val = pytype(v)
    except TypeError:
        raise exceptions.NoDefaultValueException(k)
    except ValueError:
        raise exceptions.NotValidSettingType(k, v, pytype.__name__)
    return val


def to_custom_types(dictionary, types, default, options=dict(), no_ctype=True):
    """
    Casts, in place, the entries of ``dictionary`` to the types declared in ``types``, filling the missing entries
    with the values in ``default``.

    ``no_ctype`` is kept in the signature for the solvers' convenience, all values are cast to Python types.

    Raises:
        exceptions.NoDefaultValueException: a setting has not been given and it has no default.
        exceptions.NotValidSetting: a setting is not one of the allowed options.
        exceptions.NotRecognisedSetting: the dictionary contains a key that is not declared in ``types``.
    """
    for k, v in types.items():
        if type(v) != list:
            data_type = v
        else:
            if k in dictionary:
                data_type = get_data_type_for_several_options(dictionary[k], v, k)
            else:
                # first data type in the list for the default value
                data_type = v[0]
        dictionary[k] = get_custom_type(dictionary, data_type, k, default)

    check_settings_in_options(dictionary, types, options)

    unrecognised_settings = [k for k in dictionary.keys() if k not in types]
    if unrecognised_settings:
        raise exceptions.NotRecognisedSetting(unrecognised_settings[0])


def get_data_type_for_several_options(dict_value, list_settings_types, setting_name):
    """
    Checks the data type of the setting input in case of several data type options.
    Only a scalar or list can be the case for these cases.

    Args:
        dict_value: Dictionary value of processed settings
        list_settings_types (list): Possible setting type options for this setting
        setting_name (str): Name of the setting

    Raises:
        exceptions.NotValidSettingType: if the setting is not allowed.
    """
    for data_type in list_settings_types:
        if 'list' in data_type and (type(dict_value) == list or not np.isscalar(dict_value)):
            return data_type
        elif 'list' not in data_type and np.isscalar(dict_value):
            return data_type
    raise exceptions.NotValidSettingType(setting_name, dict_value, list_settings_types)


def get_default_value(default_value, k, v, py_type=None):
    if default_value is None:
        raise exceptions.NoDefaultValueException(k)
    if v in ['float', 'int', 'bool', 'str']:
        converted_value = cast(k, default_value, py_type, default_value)
    else:
        converted_value = default_value.copy()
    notify_default_value(k, converted_value)
    return converted_value


def get_custom_type(dictionary, v, k, default):
    scalar_types = {'int': int,
                    'float': float,
                    'str': str,
                    'bool': str2bool}

    if v in scalar_types:
        py_type = scalar_types[v]
        try:
            dictionary[k] = cast(k, dictionary[k], py_type, default.get(k, None))
        except KeyError:
            dictionary[k] = get_default_value(default.get(k, None), k, v, py_type=py_type)

    elif v == 'list(str)':
        try:
            value = dictionary[k]
        except KeyError:
            dictionary[k] = get_default_value(default.get(k, None), k, v)
        else:
            # configobj returns single values as plain strings
            if isinstance(value, str):
                value = [x for x in value.split(',') if x.strip()]
            dictionary[k] = [x.strip() for x in value]

    elif v == 'list(dict)':
        try:
            for i in range(len(dictionary[k])):
                if not isinstance(dictionary[k][i], dict):
                    dictionary[k][i] = ast.literal_eval(dictionary[k][i])
        except KeyError:
            dictionary[k] = get_default_value(default.get(k, None), k, v)

    elif v in ['list(float)', 'list(int)', 'list(complex)']:
        element_type = {'list(float)': float,
                        'list(int)': int,
                        'list(complex)': complex}[v]
        try:
            dictionary[k]
        except KeyError:
            dictionary[k] = get_default_value(default.get(k, None), k, v)

        if isinstance(dictionary[k], np.ndarray):
            return dictionary[k]
        if isinstance(dictionary[k], (list, tuple)):
            dictionary[k] = np.array([element_type(item) for item in dictionary[k]])
            return dictionary[k]
        if np.isscalar(dictionary[k]) and not isinstance(dictionary[k], str):
            dictionary[k] = np.array([element_type(dictionary[k])])
            return dictionary[k]
        stripped = dictionary[k].strip('[]')
        separator = ',' if stripped.find(',') >= 0 else None
        dictionary[k] = np.array([element_type(item) for item in stripped.split(separator) if item.strip()])

    elif v == 'dict':
        try:
            if not isinstance(dictionary[k], dict):
                raise TypeError('Setting for {:s} is not a dictionary'.format(k))
        except KeyError:
            dictionary[k] = get_default_value(default.get(k, None), k, v)
    else:
        raise TypeError('Variable %s has an unknown type (%s) that cannot be casted' % (k, v))
    return dictionary[k]


def check_settings_in_options(settings, settings_types, settings_options):
    """
    Checks that settings given a type ``str`` or ``int`` and allowable options are indeed valid.

    Args:
        settings (dict): Dictionary of processed settings
        settings_types (dict): Dictionary of settings types
        settings_options (dict): Dictionary of options (may be empty)

    Raises:
        exceptions.NotValidSetting: if the setting is not allowed.
    """
    for k in settings_options:
        if settings_types[k] == 'int':
            value = settings[k]
            if value not in settings_options[k]:
                raise exceptions.NotValidSetting(k, value, settings_options[k])

        elif settings_types[k] == 'str':
            value = settings[k]
            if value not in settings_options[k] and value:
                # checks that the value is within the options and that it is not an empty string.
                raise exceptions.NotValidSetting(k, value, settings_options[k])

        elif settings_types[k] == 'list(str)':
            for item in settings[k]:
                if item not in settings_options[k] and item:
                    raise exceptions.NotValidSetting(k, item, settings_options[k])


def load_config_file(file_name: str) -> dict:
    """This function reads the ``.flutterpy`` input files.

    Args:
        file_name (str): contains the path and file name of the file to be read by the ``configobj``
            reader.

    Returns:
        config (dict): a ``ConfigObj`` object that behaves like a dictionary
    """
    dict_config = configobj.ConfigObj(file_name)
    return dict_config


def str2bool(string):
    false_list = ['false', 'off', '0', 'no']
    if isinstance(string, (bool, np.bool_)):
        return bool(string)

    if not string:
        return False
    elif str(string).lower() in false_list:
        return False
    else:
        return True


def notify_default_value(k, v):
    cout.cout_wrap('Variable ' + k + ' has no assigned value in the settings file.')
    cout.cout_wrap('    will default to the value: ' + str(v), 1)


class SettingsTable:
    """
    Generates the documentation's setting table at runtime.

    The solvers' settings are declared in the ``settings_types``, ``settings_default`` and ``settings_description``
    class dictionaries. This class produces a table in reStructuredText format with those settings and adds it to the
    solver's docstring.

    Examples:
        The end of the solver's class declaration should contain

        .. code-block:: python

            settings_table = settings.SettingsTable()
            __doc__ += settings_table.generate(settings_types, settings_default, settings_description)

        to generate the settings table.

    """
    def __init__(self):
        self.n_fields = 4
        self.n_settings = 0
        self.field_length = [0] * self.n_fields
        self.titles = ['Name', 'Type', 'Description', 'Default']

        self.settings_types = dict()
        self.settings_description = dict()
        self.settings_default = dict()
        self.settings_options = dict()
        self.settings_options_strings = dict()

        self.line_format = ''

        self.table_string = ''

    def generate(self, settings_types, settings_default, settings_description, settings_options=dict(),
                 header_line=None):
        """
        Returns a rst-format table with the settings' names, types, description and default values

        Args:
            settings_types (dict): Setting types.
            settings_default (dict): Settings default value.
            settings_description (dict): Setting description.
            settings_options (dict): Valid options for ``str`` and ``int`` settings (optional)
            header_line (str): Header line description (optional)

        Returns:
            str: .rst formatted string with a table containing the settings' information.
        """
        self.settings_types = settings_types
        self.settings_default = settings_default
        self.settings_description = settings_description
        self.n_settings = len(self.settings_types)

        if header_line is None:
            header_line = 'The settings that this solver accepts are given by a dictionary, ' \
                          'with the following key-value pairs:'
        else:
            assert type(header_line) == str, 'header_line not a string, verify order of arguments'

        if type(settings_options) != dict:
            raise TypeError('settings_options is not a dictionary')

        if settings_options:
            self.settings_options = settings_options
            self.n_fields += 1
            self.field_length.append(0)
            self.titles.append('Options')
            self.process_options()

        self.set_field_length()
        self.line_format = self.setting_line_format()

        table_string = '\n    ' + header_line + '\n'
        table_string += '\n    ' + self.print_divider_line()
        table_string += '    ' + self.print_header()
        table_string += '    ' + self.print_divider_line()
        for setting in self.settings_types:
            table_string += '    ' + self.print_setting(setting)
        table_string += '    ' + self.print_divider_line()

        self.table_string = table_string

        return table_string

    def process_options(self):
        self.settings_options_strings = self.settings_options.copy()
        for k, v in self.settings_options.items():
            self.settings_options_strings[k] = ', '.join(['``%s``' % str(option) for option in v])

    def set_field_length(self):
        field_lengths = [[] for i in range(self.n_fields)]
        for setting in self.settings_types:
            stype = str(self.settings_types.get(setting, ''))
            description = self.settings_description.get(setting, '')
            default = str(self.settings_default.get(setting, ''))
            option = str(self.settings_options_strings.get(setting, ''))

            field_lengths[0].append(len(setting) + 4)
            field_lengths[1].append(len(stype) + 4)  # + 4 for the rst ``X``
            field_lengths[2].append(len(description))
            field_lengths[3].append(len(default) + 4)

            if self.settings_options:
                field_lengths[4].append(len(option))

        for i_field in range(self.n_fields):
            field_lengths[i_field].append(len(self.titles[i_field]))
            self.field_length[i_field] = max(field_lengths[i_field]) + 2  # two spaces as column dividers

    def print_divider_line(self):
        divider = ''
        for i_field in range(self.n_fields):
            divider += '='*(self.field_length[i_field]-2) + '  '
        divider += '\n'
        return divider

    def print_setting(self, setting):
        stype = '``' + str(self.settings_types.get(setting, '')) + '``'
        description = self.settings_description.get(setting, '')
        default = '``' + str(self.settings_default.get(setting, '')) + '``'
        fields = ['``' + str(setting) + '``', stype, description, default]
        if self.settings_options:
            fields.append(self.settings_options_strings.get(setting, ''))
        return self.line_format.format(fields) + '\n'

    def print_header(self):
        return self.line_format.format(self.titles) + '\n'

    def setting_line_format(self):
        string = ''
        for i_field in range(self.n_fields):
            string += '{0[' + str(i_field) + ']:<' + str(self.field_length[i_field]) + '}'
        return string


def set_value_or_default(dictionary, key, default_val):
    try:
        value = dictionary[key]
    except KeyError:
        value = default_val
    return value
