import unittest

from src.brain.directives import (BiasMode, DirectiveFactory, SetBias, SetPriority,
                                  deserialize, serialize, validate_directive, validate_directives)
from src.brain.errors import InvalidDirective
from src.brain.snapshot import PeerView, PriorityTier, SwarmSnapshot

class TestDirectiveFactory(unittest.TestCase):
    def test_set_priority(self):
        directive = DirectiveFactory.set_priority('peer1', 'high')
        self.assertEqual(directive, SetPriority('peer1', PriorityTier.HIGH))
        self.assertEqual(directive.to_dict(), {'type': 'set_priority', 'peer': 'peer1', 'tier': 'high'})

    def test_set_bias(self):
        directive = DirectiveFactory.set_bias(BiasMode.ENDGAME)
        self.assertEqual(directive, SetBias(BiasMode.ENDGAME))
        self.assertEqual(directive.to_dict(), {'type': 'set_bias', 'mode': 'endgame'})

    def test_out_of_range_values(self):
        with self.assertRaises(InvalidDirective):
            DirectiveFactory.set_priority('peer1', 'urgent')
        with self.assertRaises(InvalidDirective):
            DirectiveFactory.set_bias('panic')

    def test_from_dict(self):
        directive = DirectiveFactory.from_dict({'type': 'set_bias', 'mode': 'aggressive_peer_acquisition'})
        self.assertEqual(directive, SetBias(BiasMode.AGGRESSIVE_PEER_ACQUISITION))

        with self.assertRaises(InvalidDirective):
            DirectiveFactory.from_dict({'type': 'disconnect', 'peer': 'peer1'})
        with self.assertRaises(InvalidDirective):
            DirectiveFactory.from_dict({'type': 'set_priority', 'peer': 'peer1'})
        with self.assertRaises(InvalidDirective):
            DirectiveFactory.from_dict('set_bias')

    def test_serialize_deserialize(self):
        directives = [SetBias(BiasMode.ENDGAME), SetPriority('peer1', PriorityTier.LOW)]
        data = serialize(directives)
        self.assertIsInstance(data, bytes)
        self.assertEqual(deserialize(data), directives)

        with self.assertRaises(ValueError):
            deserialize(b'{not json')
        with self.assertRaises(ValueError):
            deserialize(b'{"type": "set_bias"}')


class TestValidation(unittest.TestCase):
    def setUp(self):
        self.snapshot = SwarmSnapshot([PeerView('peer1'), PeerView('peer2')], 50.0, 100)

    def test_valid_directives_pass_through(self):
        directive = SetPriority('peer1', PriorityTier.HIGH)
        self.assertIs(validate_directive(directive, self.snapshot), directive)

        bias = validate_directive({'type': 'set_bias', 'mode': 'normal'}, self.snapshot)
        self.assertEqual(bias, SetBias(BiasMode.NORMAL))

    def test_unknown_peer_rejected(self):
        with self.assertRaises(InvalidDirective) as ctx:
            validate_directive(SetPriority('peer9', PriorityTier.HIGH), self.snapshot)
        self.assertIn('unknown peer', ctx.exception.reason)

    def test_enum_values_coerced_like_dict_form(self):
        # constructed directly, bypassing the factory
        self.assertEqual(validate_directive(SetPriority('peer1', 'high'), self.snapshot),
                         validate_directive({'type': 'set_priority', 'peer': 'peer1', 'tier': 'high'},
                                            self.snapshot))
        self.assertEqual(validate_directive(SetBias('endgame'), self.snapshot),
                         SetBias(BiasMode.ENDGAME))

    def test_out_of_range_values_rejected(self):
        with self.assertRaises(InvalidDirective):
            validate_directive(SetPriority('peer1', 'urgent'), self.snapshot)
        with self.assertRaises(InvalidDirective):
            validate_directive(SetBias('warp_speed'), self.snapshot)

    def test_foreign_objects_rejected(self):
        with self.assertRaises(InvalidDirective):
            validate_directive(42, self.snapshot)
        with self.assertRaises(InvalidDirective):
            validate_directive(SetPriority(['peer1'], PriorityTier.HIGH), self.snapshot)

    def test_batch_drops_only_invalid_entries(self):
        raw = [
            SetBias(BiasMode.ENDGAME),
            SetPriority('ghost', PriorityTier.HIGH),
            {'type': 'set_priority', 'peer': 'peer2', 'tier': 'high'},
            'garbage'
        ]
        valid, rejected = validate_directives(raw, self.snapshot)

        self.assertEqual(valid, [SetBias(BiasMode.ENDGAME), SetPriority('peer2', PriorityTier.HIGH)])
        self.assertEqual(len(rejected), 2)
        self.assertEqual(rejected[0][0], SetPriority('ghost', PriorityTier.HIGH))
        self.assertEqual(rejected[1][0], 'garbage')

if __name__ == '__main__':
    unittest.main()
