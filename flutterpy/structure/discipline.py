"""Structural discipline

Holds the property assignments, boundary conditions and volume loads of a structural model, together with the set
of parameters that are currently tracked for sensitivity analysis.
"""
import flutterpy.utils.cout_utils as cout
import flutterpy.utils.exceptions as exceptions


class StructuralDiscipline(object):
    """
    Structural discipline of an analysis

    The discipline does not own the objects it is given: parameters, property cards and loads belong to the case
    model. Sensitivity analyses register the parameters they differentiate with respect to via
    :meth:`add_parameter` and must remove them again with :meth:`remove_parameter` when they finish.
    """
    def __init__(self):
        self._parameters = []
        self.properties = dict()
        self.dirichlet_bcs = dict()
        self.volume_loads = dict()

    def add_parameter(self, parameter):
        if self.is_tracked(parameter):
            raise exceptions.PreconditionFailure('Parameter %s is already tracked for sensitivity' % parameter.name)
        self._parameters.append(parameter)

    def remove_parameter(self, parameter):
        for i_param, p in enumerate(self._parameters):
            if p is parameter:
                del self._parameters[i_param]
                return
        cout.cout_wrap('Parameter %s was not tracked for sensitivity' % parameter.name, 3)

    def is_tracked(self, parameter):
        return any(p is parameter for p in self._parameters)

    def tracked_names(self):
        return [p.name for p in self._parameters]

    def set_property_for_subdomain(self, subdomain, card):
        self.properties[subdomain] = card

    def add_dirichlet_bc(self, boundary, bc):
        self.dirichlet_bcs[boundary] = bc

    def add_volume_load(self, subdomain, load):
        self.volume_loads.setdefault(subdomain, []).append(load)
