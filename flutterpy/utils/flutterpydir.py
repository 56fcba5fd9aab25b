import os

FlutterpyDir = os.path.abspath(os.path.dirname(os.path.realpath(__file__)) + '/../../')
