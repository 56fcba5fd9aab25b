import flutterpy.utils.settings as settings
import flutterpy.utils.exceptions as exceptions
import flutterpy.utils.cout_utils as cout
import numpy as np
import unittest


class TestSettings(unittest.TestCase):
    """
    Tests the settings utilities module
    """

    def setUp(self):
        cout.cout_wrap.cout_quiet()

    def test_settings_to_custom_types(self):
        in_dict = dict()
        types_dict = dict()
        default_dict = dict()

        in_dict['integer_var'] = '1234'
        types_dict['integer_var'] = 'int'
        default_dict['integer_var'] = 0

        in_dict['float_var'] = '1.234'
        types_dict['float_var'] = 'float'
        default_dict['float_var'] = 0.0

        in_dict['str_var'] = 'aaaa'
        types_dict['str_var'] = 'str'
        default_dict['str_var'] = 'default_string'

        in_dict['bool_var'] = 'on'
        types_dict['bool_var'] = 'bool'
        default_dict['bool_var'] = False

        in_dict['list_var'] = 'aa, bb, 11, ss'
        types_dict['list_var'] = 'list(str)'
        default_dict['list_var'] = ['a', 'b']
        split_list = ['aa', 'bb', '11', 'ss']

        in_dict['float_list_var'] = '1.1, 2.2, 3.3'
        types_dict['float_list_var'] = 'list(float)'
        default_dict['float_list_var'] = np.array([0.0, -1.1])
        split_float_list = np.array([1.1, 2.2, 3.3])

        # assigned values test
        settings.to_custom_types(in_dict, types_dict, default_dict)
        self.assertEqual(in_dict['integer_var'], 1234, 'Integer test for assigned values not passed')
        self.assertEqual(in_dict['float_var'], 1.234, 'Float test for assigned values not passed')
        self.assertEqual(in_dict['str_var'], 'aaaa', 'String test for assigned values not passed')
        self.assertEqual(in_dict['bool_var'], True, 'Bool test for assigned values not passed')
        self.assertEqual(in_dict['list_var'], split_list, 'List test for assigned values not passed')
        np.testing.assert_array_almost_equal(in_dict['float_list_var'], split_float_list,
                                             err_msg='Floating point list test for assigned values not passed')

        # default values test
        in_default_dict = dict()
        settings.to_custom_types(in_default_dict, types_dict, default_dict)
        self.assertEqual(in_default_dict['integer_var'], default_dict['integer_var'],
                         'Integer test for default values not passed')
        self.assertEqual(in_default_dict['float_var'], default_dict['float_var'],
                         'Float test for default values not passed')
        self.assertEqual(in_default_dict['str_var'], default_dict['str_var'],
                         'String test for default values not passed')
        self.assertEqual(in_default_dict['bool_var'], default_dict['bool_var'],
                         'Bool test for default values not passed')
        self.assertEqual(in_default_dict['list_var'], default_dict['list_var'],
                         'List test for default values not passed')

        # the default list is copied, not shared
        in_default_dict['list_var'].append('c')
        self.assertEqual(default_dict['list_var'], ['a', 'b'])

    def test_no_default_value(self):
        types_dict = {'dt': 'float'}
        default_dict = {'dt': None}
        with self.assertRaises(exceptions.NoDefaultValueException):
            settings.to_custom_types(dict(), types_dict, default_dict)

    def test_not_valid_setting(self):
        types_dict = {'damping_indicator': 'str'}
        default_dict = {'damping_indicator': 'real_part'}
        options = {'damping_indicator': ['real_part', 'damping_ratio']}

        in_dict = {'damping_indicator': 'damping_ratio'}
        settings.to_custom_types(in_dict, types_dict, default_dict, options)
        self.assertEqual(in_dict['damping_indicator'], 'damping_ratio')

        with self.assertRaises(exceptions.NotValidSetting):
            settings.to_custom_types({'damping_indicator': 'imaginary_part'}, types_dict, default_dict, options)

    def test_not_recognised_setting(self):
        types_dict = {'NumLambda': 'int'}
        default_dict = {'NumLambda': 3}
        with self.assertRaises(exceptions.NotRecognisedSetting):
            settings.to_custom_types({'NumLambda': 3, 'num_lambda': 4}, types_dict, default_dict)

    def test_not_valid_setting_type(self):
        types_dict = {'n_divisions': 'int'}
        default_dict = {'n_divisions': 10}
        with self.assertRaises(exceptions.NotValidSettingType):
            settings.to_custom_types({'n_divisions': 'ten'}, types_dict, default_dict)

    def test_str2bool(self):
        for false_value in ['false', 'off', '0', 'no', '', False]:
            self.assertFalse(settings.str2bool(false_value))
        for true_value in ['true', 'on', '1', 'yes', True]:
            self.assertTrue(settings.str2bool(true_value))


if __name__ == '__main__':
    unittest.main()
